from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

LOGGER = structlog.get_logger(__name__)

T = TypeVar("T")


def _log_before_sleep(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome is not None else None
    next_action = retry_state.next_action
    LOGGER.warning(
        "retry.attempt_failed",
        function=getattr(retry_state.fn, "__name__", "<unknown>"),
        attempt=retry_state.attempt_number,
        wait_seconds=round(next_action.sleep, 3) if next_action is not None else None,
        error=str(error) if error is not None else None,
    )


def exponential_backoff_with_jitter(
    *,
    max_attempts: int = 5,
    initial_wait: float = 0.5,
    max_wait: float = 10.0,
    jitter: float = 0.25,
    retry_on: type[BaseException] | tuple[type[BaseException], ...] = Exception,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry decorator: exponential backoff capped at ``max_wait`` plus random jitter.

    Works for plain functions and coroutine functions alike. The last
    exception is re-raised once ``max_attempts`` is exhausted.
    """
    return cast(
        Callable[[Callable[..., T]], Callable[..., T]],
        retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=initial_wait, max=max_wait) + wait_random(0, jitter),
            retry=retry_if_exception_type(retry_on),
            before_sleep=_log_before_sleep,
            reraise=True,
        ),
    )
