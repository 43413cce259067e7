"""Rust-style Result helpers shared by the gateway and service layers.

Provides:
- ``Ok`` / ``Err`` wrappers and the ``Result`` union
- a small ``Error`` hierarchy carrying message, context and cause
- module-level error counters for diagnostics
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    Iterator,
    Mapping,
    TypeVar,
    Union,
    cast,
)

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


_SENSITIVE_KEYS: tuple[str, ...] = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "dsn",
)

_ERROR_COUNTERS: Counter[str] = Counter()


def _sanitize_context(context: Mapping[str, Any] | None) -> dict[str, Any]:
    """Redact values whose key looks secret-bearing, recursing into dicts."""
    if not context:
        return {}

    def _sanitize(key: str, value: Any) -> Any:
        if any(sk in key.lower() for sk in _SENSITIVE_KEYS):
            return "***redacted***"
        if isinstance(value, dict):
            mapping = cast(Mapping[str, Any], value)
            return {k: _sanitize(str(k), v) for k, v in mapping.items()}
        return value

    return {key: _sanitize(str(key), value) for key, value in context.items()}


def record_error(error: "Error") -> None:
    """Count an error occurrence by type."""
    _ERROR_COUNTERS[type(error).__name__] += 1
    _ERROR_COUNTERS["__total__"] += 1


def get_error_metrics() -> dict[str, int]:
    """Return error counts grouped by error type name."""
    return dict(_ERROR_COUNTERS)


def reset_error_metrics() -> None:
    _ERROR_COUNTERS.clear()


# --- Error hierarchy ---


class Error(Exception):
    """Base error carried inside ``Err``: message, optional context and cause."""

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})
        self.cause: BaseException | None = cause

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "context": dict(self.context),
            "cause": repr(self.cause) if self.cause is not None else None,
        }

    def __str__(self) -> str:  # pragma: no cover - delegates to message
        return self.message

    def log_safe_context(self) -> dict[str, Any]:
        """Context with secret-looking values masked, safe for logs."""
        return _sanitize_context(self.context)


class DatabaseError(Error):
    """Persistence backend failure."""


class ValidationError(Error):
    """Input failed validation."""


class SystemError(Error):
    """Infrastructure failure such as pool exhaustion or timeouts."""


# --- Result / Ok / Err ---


@dataclass(slots=True)
class Ok(Generic[T, E]):
    """Successful result."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> E:
        raise RuntimeError("Called unwrap_err() on Ok value.")

    def map(self, fn: Callable[[T], U]) -> "Result[U, E]":
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[E], F]) -> "Result[T, F]":
        return Ok(self.value)

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return fn(self.value)

    def unwrap_or(self, default: T) -> T:
        return self.value

    def __iter__(self) -> Iterator[T]:
        yield self.value


@dataclass(slots=True)
class Err(Generic[T, E]):
    """Failed result."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        raise RuntimeError(f"Called unwrap() on Err value: {self.error!r}")

    def unwrap_err(self) -> E:
        return self.error

    def map(self, fn: Callable[[T], U]) -> "Result[U, E]":
        return Err(self.error)

    def map_err(self, fn: Callable[[E], F]) -> "Result[T, F]":
        return Err(fn(self.error))

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return Err(self.error)

    def unwrap_or(self, default: T) -> T:
        return default

    def __iter__(self) -> Iterator[T]:
        return iter(())


Result = Union[Ok[T, E], Err[T, E]]


__all__ = [
    "Ok",
    "Err",
    "Result",
    "Error",
    "DatabaseError",
    "ValidationError",
    "SystemError",
    "record_error",
    "get_error_metrics",
    "reset_error_metrics",
]
