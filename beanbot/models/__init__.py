"""Ledger data models and amount helpers."""

from __future__ import annotations

from . import ledger_errors, ledger_models

__all__ = ["ledger_errors", "ledger_models"]
