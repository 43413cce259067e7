from __future__ import annotations

import asyncio
import json
from typing import Any, cast
from weakref import WeakKeyDictionary

import asyncpg
import structlog
from dotenv import load_dotenv

from beanbot.config.db_settings import PoolConfig
from beanbot.infra.retry import exponential_backoff_with_jitter

LOGGER = structlog.get_logger(__name__)

# Failures worth waiting out while PostgreSQL is still starting.
_CONNECT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.CannotConnectNowError,
    asyncpg.PostgresConnectionError,
)

_POOL_LOCKS: "WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = WeakKeyDictionary()
_POOLS: "WeakKeyDictionary[asyncio.AbstractEventLoop, asyncpg.Pool]" = WeakKeyDictionary()


async def init_pool(config: PoolConfig | None = None) -> asyncpg.Pool:
    """Create the asyncpg pool for the running loop, or return the existing one.

    Safe to call concurrently: creation happens once per event loop under a lock.
    """
    loop = asyncio.get_running_loop()
    existing = _POOLS.get(loop)
    if existing is not None:
        return existing

    lock = _get_pool_lock(loop)

    async with lock:
        pool = _POOLS.get(loop)
        if pool is not None:
            return pool

        if config is None:
            load_dotenv(override=False)
            pool_config = PoolConfig.model_validate({})
        else:
            pool_config = config

        connect = exponential_backoff_with_jitter(
            max_attempts=pool_config.connect_attempts,
            retry_on=_CONNECT_ERRORS,
        )(_open_pool)
        pool = await connect(pool_config)
        _POOLS[loop] = pool

        await _ensure_schema(pool)

        LOGGER.info(
            "db.pool.initialised",
            min_size=pool_config.min_size,
            max_size=pool_config.max_size,
        )
        return pool


async def close_pool() -> None:
    """Close the pool of the running loop if one exists."""
    loop = asyncio.get_running_loop()
    lock = _get_pool_lock(loop)

    async with lock:
        pool = _POOLS.pop(loop, None)

    if pool is not None:
        await pool.close()
        LOGGER.info("db.pool.closed")


async def _open_pool(config: PoolConfig) -> asyncpg.Pool:
    _apg = cast(Any, asyncpg)
    return cast(
        asyncpg.Pool,
        await _apg.create_pool(
            dsn=config.dsn,
            min_size=config.min_size,
            max_size=config.max_size,
            command_timeout=config.timeout,
            init=_configure_connection,
        ),
    )


async def _ensure_schema(pool: asyncpg.Pool) -> None:
    """Best-effort: run ``alembic upgrade head`` when the ledger table is missing."""
    try:
        async with pool.acquire() as conn:
            exists = bool(
                await cast(Any, conn).fetchval("SELECT to_regclass('ledger.accounts') IS NOT NULL")
            )
        if exists:
            return
        LOGGER.info("db.pool.auto_migrate.start")
        try:
            proc = await asyncio.create_subprocess_exec("alembic", "upgrade", "head")
            rc = await proc.wait()
        except OSError as exc:
            LOGGER.warning("db.pool.auto_migrate.failed", error=str(exc))
            return
        if rc == 0:
            LOGGER.info("db.pool.auto_migrate.done")
        else:
            LOGGER.warning("db.pool.auto_migrate.failed", code=rc)
    except Exception as exc:  # pragma: no cover - non-fatal
        LOGGER.warning("db.pool.schema_check_failed", error=str(exc))


def _get_pool_lock(loop: asyncio.AbstractEventLoop) -> asyncio.Lock:
    lock = _POOL_LOCKS.get(loop)
    if lock is None:
        lock = asyncio.Lock()
        _POOL_LOCKS[loop] = lock
    return lock


async def _configure_connection(connection: asyncpg.Connection) -> None:
    # History is a jsonb array; decode it to Python lists on the way out.
    _conn_any = cast(Any, connection)
    for type_name in ("json", "jsonb"):
        await _conn_any.set_type_codec(
            type_name,
            schema="pg_catalog",
            encoder=json.dumps,
            decoder=json.loads,
            format="text",
        )
