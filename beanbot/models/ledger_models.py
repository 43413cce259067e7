from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from beanbot.models.ledger_errors import InvalidAmountError

__all__ = [
    "MAX_AMOUNT_FRACTION_DIGITS",
    "MAX_AMOUNT_INTEGER_DIGITS",
    "MAX_HISTORY_ENTRIES",
    "AppliedDelta",
    "LedgerEntry",
    "format_amount",
    "make_entry",
    "make_entries",
    "negate_amount",
    "parse_amount",
]

# Retention bound of the per-chat history window.
MAX_HISTORY_ENTRIES = 10

# Accepted amounts have at most this many digits on each side of the point.
# Larger exponents exhaust PostgreSQL numeric arithmetic or render as
# replies longer than Discord's 2000 character limit.
MAX_AMOUNT_INTEGER_DIGITS = 15
MAX_AMOUNT_FRACTION_DIGITS = 10


@dataclass(slots=True, frozen=True)
class LedgerEntry:
    """One recorded signed amount and the epoch second it was stored."""

    timestamp: int
    amount: str

    @property
    def recorded_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    @property
    def reversal_amount(self) -> str:
        return negate_amount(self.amount)


@dataclass(slots=True, frozen=True)
class AppliedDelta:
    """Row returned by ``ledger.fn_apply_delta``."""

    balance: Decimal
    history_length: int


def parse_amount(raw: Any) -> Decimal:
    """Parse a user or caller supplied amount into a finite ``Decimal``.

    Only the first whitespace separated token counts, so ``"12.5 lunch"``
    parses as ``12.5``. Raises ``InvalidAmountError`` for anything else.
    """
    if isinstance(raw, Decimal):
        value = raw
    else:
        if raw is None or isinstance(raw, (bool, float)):
            raise InvalidAmountError(
                "Amount must be a decimal string.", context={"amount": repr(raw)}
            )
        tokens = str(raw).split()
        if not tokens:
            raise InvalidAmountError("Amount is empty.", context={"amount": repr(raw)})
        try:
            value = Decimal(tokens[0])
        except InvalidOperation as exc:
            raise InvalidAmountError(
                f"{tokens[0]!r} is not a decimal amount.",
                context={"amount": tokens[0]},
                cause=exc,
            ) from exc

    if not value.is_finite():
        raise InvalidAmountError("Amount must be finite.", context={"amount": str(value)})
    # adjusted() is the exponent of the leading digit, so 1E+15 has 16 integer digits.
    if value.adjusted() >= MAX_AMOUNT_INTEGER_DIGITS:
        raise InvalidAmountError(
            f"Amount may have at most {MAX_AMOUNT_INTEGER_DIGITS} integer digits.",
            context={"amount": str(value), "adjusted_exponent": value.adjusted()},
        )
    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > MAX_AMOUNT_FRACTION_DIGITS:
        raise InvalidAmountError(
            f"Amount may have at most {MAX_AMOUNT_FRACTION_DIGITS} decimal places.",
            context={"amount": str(value), "exponent": exponent},
        )
    return value


def format_amount(value: Decimal) -> str:
    """Plain positional notation, never scientific."""
    return format(value, "f")


def negate_amount(amount: str) -> str:
    """Flip the sign of a decimal string by toggling its leading marker.

    Zero, in any spelling, is its own negation.
    """
    text = str(amount).strip()
    if parse_amount(text).is_zero():
        return text
    if text.startswith("-"):
        return text[1:]
    if text.startswith("+"):
        return "-" + text[1:]
    return "-" + text


def make_entry(record: Mapping[str, Any]) -> LedgerEntry:
    """Convert one stored history element into a ``LedgerEntry``."""
    return LedgerEntry(timestamp=int(record["timestamp"]), amount=str(record["amount"]))


def make_entries(history: Sequence[Mapping[str, Any]] | None) -> list[LedgerEntry]:
    return [make_entry(item) for item in history or ()]
