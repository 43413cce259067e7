"""Ledger specific error types."""

from __future__ import annotations

from beanbot.infra.result import DatabaseError, Error, ValidationError


class LedgerError(Error):
    """Base error for ledger store operations."""


class InvalidAmountError(LedgerError, ValidationError):
    """Raised when an amount is not a well-formed finite decimal."""


class StorageUnavailableError(LedgerError, DatabaseError):
    """Raised when the persistence backend fails during a primary operation."""


class TrimSkipped(LedgerError):
    """The best-effort history trim did not apply. Absorbed, never surfaced."""


__all__ = [
    "LedgerError",
    "InvalidAmountError",
    "StorageUnavailableError",
    "TrimSkipped",
]
