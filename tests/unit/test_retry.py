"""Unit tests for the exponential backoff retry decorator."""

from __future__ import annotations

import pytest

from beanbot.infra.retry import exponential_backoff_with_jitter


class RetryableError(Exception):
    """Error that should trigger retry."""


class NonRetryableError(Exception):
    """Error that should not trigger retry."""


@pytest.mark.unit
def test_retries_on_matching_exception() -> None:
    call_count = [0]

    @exponential_backoff_with_jitter(
        max_attempts=3, initial_wait=0.001, max_wait=0.01, jitter=0.0, retry_on=RetryableError
    )
    def failing_function() -> int:
        call_count[0] += 1
        if call_count[0] < 3:
            raise RetryableError("Temporary failure")
        return 42

    assert failing_function() == 42
    assert call_count[0] == 3


@pytest.mark.unit
def test_does_not_retry_on_other_exceptions() -> None:
    call_count = [0]

    @exponential_backoff_with_jitter(max_attempts=3, initial_wait=0.001, retry_on=RetryableError)
    def failing_function() -> int:
        call_count[0] += 1
        raise NonRetryableError("Permanent failure")

    with pytest.raises(NonRetryableError):
        failing_function()
    assert call_count[0] == 1


@pytest.mark.unit
def test_reraises_last_error_when_attempts_exhausted() -> None:
    call_count = [0]

    @exponential_backoff_with_jitter(
        max_attempts=2, initial_wait=0.001, max_wait=0.01, jitter=0.0, retry_on=RetryableError
    )
    def always_failing() -> None:
        call_count[0] += 1
        raise RetryableError(f"attempt {call_count[0]}")

    with pytest.raises(RetryableError, match="attempt 2"):
        always_failing()
    assert call_count[0] == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retries_coroutines() -> None:
    call_count = [0]

    @exponential_backoff_with_jitter(
        max_attempts=4, initial_wait=0.001, max_wait=0.01, jitter=0.0, retry_on=OSError
    )
    async def connect() -> str:
        call_count[0] += 1
        if call_count[0] < 2:
            raise ConnectionRefusedError("not yet")
        return "connected"

    assert await connect() == "connected"
    assert call_count[0] == 2
