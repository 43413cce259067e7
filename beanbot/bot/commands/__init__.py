"""Slash command modules for the ledger bot."""

from . import ledger as ledger  # noqa: F401
