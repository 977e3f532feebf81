"""
Retry/backoff executor for provider calls.

Wraps a single provider call with bounded retries using tenacity. Only
transient failures (HTTP 429 and 5xx) are retried; anything else fails on
first occurrence. Backoff is base_delay * 2**attempt_index with no jitter.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from oracle_advisor.shared.cancellation import CancellationToken
from oracle_advisor.shared.errors import read_status_code


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 500


def is_retryable_status(status: Optional[int]) -> bool:
    """429 and any 5xx are transient; everything else is terminal."""
    return status == 429 or (status is not None and 500 <= status < 600)


def is_retryable_error(exc: BaseException) -> bool:
    return is_retryable_status(read_status_code(exc))


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay_ms = int((retry_state.next_action.sleep if retry_state.next_action else 0) * 1000)
    logger.warning(
        f"Retryable provider error (status={read_status_code(exc) if exc else None}), "
        f"attempt {retry_state.attempt_number} failed, retrying in {delay_ms}ms"
    )


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    *,
    token: Optional[CancellationToken] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Invoke `operation` up to `max_attempts` times.

    Args:
        operation: Zero-argument coroutine function performing one attempt
        max_attempts: Total attempts including the first one
        base_delay_ms: Backoff before the second attempt; doubles after that
        token: Shared request token. Each attempt runs under it and backoff
            sleeps abort as soon as it fires.
        sleep: Override for the backoff sleep (seconds). Defaults to the
            token's cancellable sleep, or asyncio.sleep without a token.

    Returns:
        The operation's result.

    Raises:
        The last underlying exception when it is not retryable or attempts
        are exhausted; OperationCancelledError when the token fires.
    """
    if sleep is None:
        sleep = token.sleep if token is not None else asyncio.sleep

    if token is not None:
        async def attempt() -> T:
            return await token.run(operation)
    else:
        attempt = operation

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=base_delay_ms / 1000, exp_base=2),
        retry=retry_if_exception(is_retryable_error),
        sleep=sleep,
        before_sleep=_log_retry,
        reraise=True,
    )
    return await retrying(attempt)
