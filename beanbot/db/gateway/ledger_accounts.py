from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Mapping, Sequence, cast

from beanbot.infra.types.db import ConnectionProtocol
from beanbot.models.ledger_models import AppliedDelta, LedgerEntry, make_entries


class LedgerAccountGateway:
    """Gateway around the ``ledger`` stored functions and account reads.

    Methods raise whatever asyncpg raises; error mapping happens in the service.
    """

    def __init__(self, *, schema: str = "ledger") -> None:
        self._schema = schema

    async def apply_delta(
        self,
        connection: ConnectionProtocol,
        *,
        chat_id: int,
        amount: Decimal,
        timestamp: int,
    ) -> AppliedDelta:
        sql = f"SELECT * FROM {self._schema}.fn_apply_delta($1, $2, $3)"
        record = await connection.fetchrow(sql, chat_id, amount, timestamp)
        if record is None:
            raise RuntimeError("fn_apply_delta returned no result.")
        return AppliedDelta(
            balance=Decimal(record["new_balance"]),
            history_length=int(record["history_length"]),
        )

    async def trim_history(
        self,
        connection: ConnectionProtocol,
        *,
        chat_id: int,
        max_entries: int,
    ) -> int | None:
        """Remaining history length after trimming, or None when nothing was trimmed."""
        sql = f"SELECT {self._schema}.fn_trim_history($1, $2)"
        remaining = await connection.fetchval(sql, chat_id, max_entries)
        return None if remaining is None else int(remaining)

    async def reset_balance(
        self,
        connection: ConnectionProtocol,
        *,
        chat_id: int,
        balance: Decimal,
    ) -> None:
        sql = f"SELECT {self._schema}.fn_reset_balance($1, $2)"
        await connection.execute(sql, chat_id, balance)

    async def fetch_balance(
        self,
        connection: ConnectionProtocol,
        *,
        chat_id: int,
    ) -> Decimal | None:
        sql = f"SELECT balance FROM {self._schema}.accounts WHERE chat_id = $1"
        value = await connection.fetchval(sql, chat_id)
        return None if value is None else Decimal(value)

    async def fetch_history(
        self,
        connection: ConnectionProtocol,
        *,
        chat_id: int,
    ) -> list[LedgerEntry]:
        sql = f"SELECT history FROM {self._schema}.accounts WHERE chat_id = $1"
        raw: Any = await connection.fetchval(sql, chat_id)
        # Connections without the jsonb codec hand back the raw text.
        if isinstance(raw, str):
            raw = json.loads(raw)
        return make_entries(cast(Sequence[Mapping[str, Any]] | None, raw))


__all__ = ["LedgerAccountGateway"]
