"""Per-chat running balance with a bounded history window."""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Any, Callable, cast

import structlog

from beanbot.db.gateway.ledger_accounts import LedgerAccountGateway
from beanbot.infra.db_errors import with_db_error_handler
from beanbot.infra.result import Err, Ok, Result
from beanbot.infra.types.db import PoolProtocol
from beanbot.models.ledger_errors import (
    InvalidAmountError,
    LedgerError,
    StorageUnavailableError,
    TrimSkipped,
)
from beanbot.models.ledger_models import (
    MAX_HISTORY_ENTRIES,
    AppliedDelta,
    LedgerEntry,
    format_amount,
    parse_amount,
)

LOGGER = structlog.get_logger(__name__)

ZERO_BALANCE = "0"


class LedgerStore:
    """Sole reader and writer of ledger state.

    Every public operation returns a ``Result``; failures never raise:

    - ``InvalidAmountError`` when an amount is not a finite decimal
    - ``StorageUnavailableError`` when PostgreSQL fails a primary operation

    Balance mutation is pushed down into one atomic statement
    (``ledger.fn_apply_delta``). Trimming the history window afterwards is a
    separate best-effort step whose failures are absorbed.
    """

    def __init__(
        self,
        pool: PoolProtocol,
        *,
        gateway: LedgerAccountGateway | None = None,
        clock: Callable[[], float] = time.time,
        max_entries: int = MAX_HISTORY_ENTRIES,
    ) -> None:
        self._pool = pool
        self._gateway = gateway or LedgerAccountGateway()
        self._clock = clock
        self._max_entries = max_entries

    @property
    def max_entries(self) -> int:
        return self._max_entries

    async def get_balance(self, chat_id: int) -> Result[str, LedgerError]:
        """Current balance as a decimal string, ``"0"`` for a chat never written to."""
        result = await self._fetch_balance(chat_id)
        if result.is_err():
            return Err(cast(LedgerError, result.unwrap_err()))
        value = cast(Decimal | None, result.unwrap())
        return Ok(ZERO_BALANCE if value is None else format_amount(value))

    async def apply_delta(self, chat_id: int, amount: str | Decimal) -> Result[str, LedgerError]:
        """Add ``amount`` to the balance, record it in history, return the new balance."""
        try:
            delta = parse_amount(amount)
        except InvalidAmountError as exc:
            LOGGER.info("ledger.apply_delta.invalid_amount", chat_id=chat_id, error=str(exc))
            return Err(exc)

        timestamp = int(self._clock())
        result = await self._apply(chat_id, delta, timestamp)
        if result.is_err():
            return Err(cast(LedgerError, result.unwrap_err()))
        applied = cast(AppliedDelta, result.unwrap())

        if applied.history_length > self._max_entries:
            trimmed = await self._trim_history(chat_id)
            if trimmed.is_err():
                LOGGER.debug(
                    "ledger.trim.skipped",
                    chat_id=chat_id,
                    history_length=applied.history_length,
                    reason=str(trimmed.unwrap_err()),
                )

        balance = format_amount(applied.balance)
        LOGGER.info(
            "ledger.apply_delta.ok",
            chat_id=chat_id,
            amount=format_amount(delta),
            balance=balance,
        )
        return Ok(balance)

    async def reset_balance(
        self, chat_id: int, new_balance: str | Decimal = ZERO_BALANCE
    ) -> Result[None, LedgerError]:
        """Overwrite the balance and clear the history window."""
        try:
            balance = parse_amount(new_balance)
        except InvalidAmountError as exc:
            LOGGER.info("ledger.reset.invalid_amount", chat_id=chat_id, error=str(exc))
            return Err(exc)

        result = await self._reset(chat_id, balance)
        if result.is_err():
            return Err(cast(LedgerError, result.unwrap_err()))
        LOGGER.info("ledger.reset.ok", chat_id=chat_id, balance=format_amount(balance))
        return Ok(None)

    async def get_history(
        self, chat_id: int, count: int = MAX_HISTORY_ENTRIES
    ) -> Result[list[LedgerEntry], LedgerError]:
        """Retained entries, oldest first.

        ``count`` is the caller's display hint; the store always returns the
        whole retained window (at most ``max_entries``) and leaves slicing to
        the caller.
        """
        result = await self._fetch_history(chat_id)
        if result.is_err():
            return Err(cast(LedgerError, result.unwrap_err()))
        entries = cast(list[LedgerEntry], result.unwrap())
        LOGGER.debug("ledger.history.read", chat_id=chat_id, requested=count, retained=len(entries))
        return Ok(entries)

    # --- storage steps ---

    @with_db_error_handler("ledger.get_balance", error_type=StorageUnavailableError)
    async def _fetch_balance(self, chat_id: int) -> Decimal | None:
        async with self._pool.acquire() as conn:
            return await self._gateway.fetch_balance(conn, chat_id=chat_id)

    @with_db_error_handler("ledger.apply_delta", error_type=StorageUnavailableError)
    async def _apply(self, chat_id: int, delta: Decimal, timestamp: int) -> AppliedDelta:
        async with self._pool.acquire() as conn:
            return await self._gateway.apply_delta(
                conn, chat_id=chat_id, amount=delta, timestamp=timestamp
            )

    @with_db_error_handler("ledger.reset", error_type=StorageUnavailableError)
    async def _reset(self, chat_id: int, balance: Decimal) -> None:
        async with self._pool.acquire() as conn:
            await self._gateway.reset_balance(conn, chat_id=chat_id, balance=balance)

    @with_db_error_handler("ledger.get_history", error_type=StorageUnavailableError)
    async def _fetch_history(self, chat_id: int) -> list[LedgerEntry]:
        async with self._pool.acquire() as conn:
            return await self._gateway.fetch_history(conn, chat_id=chat_id)

    async def _trim_history(self, chat_id: int) -> Result[int, TrimSkipped]:
        """Cut the window back to the newest ``max_entries`` if it is over the bound.

        Any backlog left by earlier skipped trims is removed in the same call.
        A concurrent trim, a window already back within bounds, or a backend
        error all come back as ``TrimSkipped``; none of them affect balance.
        """
        context: dict[str, Any] = {"chat_id": chat_id, "max_entries": self._max_entries}
        try:
            async with self._pool.acquire() as conn:
                remaining = await self._gateway.trim_history(
                    conn, chat_id=chat_id, max_entries=self._max_entries
                )
        except Exception as exc:
            return Err(TrimSkipped(f"History trim failed: {exc}", context=context, cause=exc))
        if remaining is None:
            return Err(TrimSkipped("History already within bound.", context=context))
        return Ok(remaining)


__all__ = ["LedgerStore", "ZERO_BALANCE"]
