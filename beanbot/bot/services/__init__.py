"""Business services behind the slash commands."""

from . import ledger_store as ledger_store  # noqa: F401
