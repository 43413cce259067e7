"""Typing protocols for the small asyncpg surface the ledger uses.

Real ``asyncpg`` pools and connections satisfy these structurally, and so do
the in-memory fakes used by the unit tests.
"""

from __future__ import annotations

from typing import Any, AsyncContextManager, Protocol


class ConnectionProtocol(Protocol):
    async def fetchval(
        self,
        query: Any,
        *args: Any,
        column: int = 0,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> Any: ...

    async def fetchrow(
        self, query: Any, *args: Any, timeout: float | None = None  # noqa: ASYNC109
    ) -> Any: ...

    async def execute(
        self, query: Any, *args: Any, timeout: float | None = None  # noqa: ASYNC109
    ) -> Any: ...


class PoolProtocol(Protocol):
    def acquire(
        self, *, timeout: float | None = None
    ) -> AsyncContextManager[ConnectionProtocol]: ...


__all__ = [
    "ConnectionProtocol",
    "PoolProtocol",
]
