from __future__ import annotations

from logging.config import fileConfig

import structlog
from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Engine

from beanbot.config.db_settings import PoolConfig

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

LOGGER = structlog.get_logger(__name__)


def _database_url() -> str:
    """DATABASE_URL validated by ``PoolConfig``, pointed at the psycopg driver."""
    load_dotenv(override=False)
    dsn = PoolConfig.model_validate({}).dsn
    return "postgresql+psycopg://" + dsn.removeprefix("postgresql://")


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=None,
        literal_binds=True,
    )

    with context.begin_transaction():
        context.run_migrations()
        LOGGER.info("alembic.migrations.run", mode="offline")


def run_migrations_online() -> None:
    connectable: Engine = create_engine(_database_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=None)

        with context.begin_transaction():
            context.run_migrations()
            LOGGER.info("alembic.migrations.run", mode="online")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
