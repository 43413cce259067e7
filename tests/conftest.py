from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import asyncpg
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from faker import Faker

from beanbot.bot.services.ledger_store import LedgerStore
from beanbot.config.db_settings import PoolConfig
from beanbot.db.pool import close_pool, init_pool
from tests.fixtures.ledger_fakes import FakeLedgerPool, StepClock


@pytest.fixture
def faker() -> Faker:
    return Faker(["en_US"])


@pytest.fixture
def fake_pool() -> FakeLedgerPool:
    return FakeLedgerPool()


@pytest.fixture
def ledger_store(fake_pool: FakeLedgerPool) -> LedgerStore:
    """LedgerStore over the in-memory fake with a one-second step clock."""
    return LedgerStore(fake_pool, clock=StepClock())


@pytest_asyncio.fixture
async def db_pool() -> AsyncIterator[asyncpg.Pool]:
    """Initialise the shared asyncpg pool for database-centric tests."""
    try:
        load_dotenv(override=False)
        config = PoolConfig.model_validate({})
    except (ValueError, RuntimeError) as exc:
        pytest.skip(f"Skipping database tests: {exc}")

    pool = await init_pool(config)
    try:
        yield pool
    finally:
        await close_pool()
        await asyncio.sleep(0.1)


@pytest_asyncio.fixture
async def db_connection(db_pool: asyncpg.Pool) -> AsyncIterator[asyncpg.Connection]:
    """Yield a transaction-scoped connection that is rolled back afterwards."""
    async with db_pool.acquire() as connection:
        transaction = connection.transaction()
        await transaction.start()
        try:
            yield connection
        finally:
            await transaction.rollback()
