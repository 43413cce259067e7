"""Mapping of asyncpg / PostgreSQL failures onto Result error types.

The ledger store wraps each primary operation with ``with_db_error_handler``
so any backend failure surfaces as an ``Err`` carrying the SQLSTATE and a
coarse classification, instead of an exception escaping to the bot.
"""

from __future__ import annotations

import time
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, TypeVar

import asyncpg
import structlog

from beanbot.infra.result import DatabaseError, Err, Error, Ok, Result, SystemError, record_error

LOGGER = structlog.get_logger(__name__)

T = TypeVar("T")

# Not every asyncpg release exports PoolError; an empty tuple matches nothing.
PoolError: type[BaseException] | tuple[type[BaseException], ...] = getattr(asyncpg, "PoolError", ())

POSTGRES_ERROR_CODES = {
    # Connection errors
    "08000": "connection_exception",
    "08003": "connection_does_not_exist",
    "08006": "connection_failure",
    "08001": "sqlclient_unable_to_establish_sqlconnection",
    "08004": "sqlserver_rejected_establishment_of_sqlconnection",
    # Data errors raised by numeric casts in the ledger functions
    "22003": "numeric_value_out_of_range",
    "22P02": "invalid_text_representation",
    # Integrity constraint violations
    "23502": "not_null_violation",
    "23505": "unique_violation",
    "23514": "check_violation",
    # Lock/Deadlock errors
    "40001": "serialization_failure",
    "40P01": "deadlock_detected",
    # Resource / timeout errors
    "53300": "too_many_connections",
    "57014": "query_canceled",
    "57P01": "admin_shutdown",
    # Schema errors (migrations not applied)
    "3F000": "invalid_schema_name",
    "42P01": "undefined_table",
    "42703": "undefined_column",
    "42883": "undefined_function",
}

_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "53300", "57014", "57P01"})


def map_postgres_error(error: asyncpg.PostgresError) -> DatabaseError:
    """Map a server-side PostgreSQL error to ``DatabaseError`` with SQLSTATE context."""
    raw_sqlstate = getattr(error, "sqlstate", None)
    sqlstate: str | None = str(raw_sqlstate) if raw_sqlstate is not None else None

    context: Dict[str, Any] = {
        "sqlstate": sqlstate,
        "error_type": POSTGRES_ERROR_CODES.get(sqlstate or "", "unknown_postgres_error"),
        "original_message": str(error),
    }

    for attr in ("table_name", "schema_name", "constraint_name", "detail"):
        value = getattr(error, attr, None)
        if value:
            context[attr] = value

    if sqlstate in _RETRYABLE_SQLSTATES:
        context["retry_possible"] = True
    if sqlstate is not None and sqlstate.startswith("08"):
        context["connection_error"] = True

    return DatabaseError(message=str(error), context=context, cause=error)


def map_connection_pool_error(error: BaseException) -> SystemError:
    """Map client-side pool failures to ``SystemError``."""
    context: Dict[str, Any] = {
        "error_type": type(error).__name__,
        "original_message": str(error),
        "pool_error": True,
    }
    if isinstance(error, asyncpg.TooManyConnectionsError):
        context["too_many_connections"] = True
        context["retry_possible"] = True
    elif isinstance(error, asyncpg.InterfaceError):
        context["interface_error"] = True

    return SystemError(message=f"Connection pool error: {error}", context=context, cause=error)


def map_asyncpg_error(error: BaseException) -> DatabaseError | SystemError:
    """Classify any exception raised while talking to PostgreSQL."""
    if isinstance(error, asyncpg.PostgresError):
        return map_postgres_error(error)
    if isinstance(error, PoolError):
        return map_connection_pool_error(error)
    if isinstance(error, asyncpg.InterfaceError):
        return SystemError(
            message=f"Database interface error: {error}",
            context={"interface_error": True, "original_error": str(error)},
            cause=error,
        )
    if isinstance(error, TimeoutError):
        return SystemError(
            message=f"Database operation timed out: {error}",
            context={"timeout": True, "retry_possible": True, "original_error": str(error)},
            cause=error,
        )
    if isinstance(error, OSError):
        return SystemError(
            message=f"Database unreachable: {error}",
            context={"connection_error": True, "original_error": str(error)},
            cause=error,
        )
    return SystemError(
        message=f"Database error: {error}",
        context={"generic_db_error": True, "original_error": str(error)},
        cause=error,
    )


def with_db_error_handler(
    operation: str,
    *,
    error_type: type[Error] | None = None,
) -> Callable[
    [Callable[..., Awaitable[T]]],
    Callable[..., Awaitable[Result[T, Error]]],
]:
    """Decorate a database coroutine so it returns ``Ok(value)`` or ``Err(error)``.

    Args:
        operation: Dotted operation name, used in logs and the error context.
        error_type: When given, the mapped error is re-wrapped into this type,
            keeping the mapped message, context and cause.
    """

    def decorator(
        func: Callable[..., Awaitable[T]],
    ) -> Callable[..., Awaitable[Result[T, Error]]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Result[T, Error]:
            started = time.monotonic()
            try:
                return Ok(await func(*args, **kwargs))
            except Exception as exc:
                mapped: Error = map_asyncpg_error(exc)
                context = {
                    **mapped.context,
                    "operation": operation,
                    "category": type(mapped).__name__,
                    "duration_seconds": round(time.monotonic() - started, 6),
                }
                if error_type is not None:
                    mapped = error_type(mapped.message, context=context, cause=exc)
                else:
                    mapped.context = context
                record_error(mapped)
                LOGGER.error(
                    "db.operation.failed",
                    operation=operation,
                    error=str(mapped),
                    context=mapped.log_safe_context(),
                )
                return Err(mapped)

        return wrapper

    return decorator


__all__ = [
    "POSTGRES_ERROR_CODES",
    "map_asyncpg_error",
    "map_connection_pool_error",
    "map_postgres_error",
    "with_db_error_handler",
]
