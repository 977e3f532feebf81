"""
Tests for the retry/backoff executor.

Covers which failures are retried, the backoff schedule, and how retries
interact with the request cancellation token.
"""

import asyncio
import time

import pytest

from oracle_advisor.shared.cancellation import CancellationToken
from oracle_advisor.shared.errors import OperationCancelledError, read_status_code
from oracle_advisor.shared.llm.retry import (
    is_retryable_error,
    is_retryable_status,
    with_retries,
)


# ============================================================================
# Test Fixtures
# ============================================================================


class StatusError(Exception):
    """Provider-style exception carrying an HTTP status code."""

    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class ResponseStatusError(Exception):
    """Exception carrying its status on an attached response object."""

    def __init__(self, status_code: int):
        super().__init__("wrapped")

        class _Response:
            pass

        self.response = _Response()
        self.response.status_code = status_code


def _scripted(*results):
    """Operation that returns or raises the scripted results in order."""
    calls = []

    async def operation():
        calls.append(len(calls) + 1)
        result = results[len(calls) - 1]
        if isinstance(result, BaseException):
            raise result
        return result

    return operation, calls


def _recording_sleep():
    sleeps = []

    async def sleep(seconds):
        sleeps.append(seconds)

    return sleep, sleeps


# ============================================================================
# TestRetryClassification
# ============================================================================


class TestRetryClassification:
    """Tests for which statuses count as transient."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 599])
    def test_transient_statuses(self, status):
        assert is_retryable_status(status)

    @pytest.mark.parametrize("status", [None, 200, 400, 401, 403, 404, 422, 600])
    def test_terminal_statuses(self, status):
        assert not is_retryable_status(status)

    def test_status_read_from_attached_response(self):
        """Status nested on exc.response should be found."""
        error = ResponseStatusError(503)
        assert read_status_code(error) == 503
        assert is_retryable_error(error)

    def test_plain_exception_not_retryable(self):
        assert not is_retryable_error(RuntimeError("boom"))


# ============================================================================
# TestWithRetries
# ============================================================================


class TestWithRetries:
    """Tests for the backoff schedule and attempt counting."""

    @pytest.mark.asyncio
    async def test_success_after_two_rate_limits(self):
        """429, 429, success -> 3 invocations with 500 ms then 1000 ms backoff."""
        operation, calls = _scripted(StatusError(429), StatusError(429), "ok")
        sleep, sleeps = _recording_sleep()

        result = await with_retries(operation, max_attempts=3, base_delay_ms=500, sleep=sleep)

        assert result == "ok"
        assert len(calls) == 3
        assert sleeps == pytest.approx([0.5, 1.0])

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        """A 400 fails on first occurrence with no sleep."""
        operation, calls = _scripted(StatusError(400), "never")
        sleep, sleeps = _recording_sleep()

        with pytest.raises(StatusError) as exc_info:
            await with_retries(operation, sleep=sleep)

        assert exc_info.value.status_code == 400
        assert len(calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_exhausted_attempts_reraise_last_error(self):
        """Persistent 5xx surfaces the last error after max_attempts."""
        operation, calls = _scripted(StatusError(500), StatusError(502), StatusError(503))
        sleep, sleeps = _recording_sleep()

        with pytest.raises(StatusError) as exc_info:
            await with_retries(operation, max_attempts=3, base_delay_ms=500, sleep=sleep)

        assert exc_info.value.status_code == 503
        assert len(calls) == 3
        assert len(sleeps) == 2

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self):
        operation, calls = _scripted(StatusError(429))
        sleep, sleeps = _recording_sleep()

        with pytest.raises(StatusError):
            await with_retries(operation, max_attempts=1, sleep=sleep)

        assert len(calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_custom_base_delay_doubles(self):
        operation, _ = _scripted(StatusError(503), StatusError(503), StatusError(503), "ok")
        sleep, sleeps = _recording_sleep()

        await with_retries(operation, max_attempts=4, base_delay_ms=100, sleep=sleep)

        assert sleeps == pytest.approx([0.1, 0.2, 0.4])


# ============================================================================
# TestRetriesWithToken
# ============================================================================


class TestRetriesWithToken:
    """Tests for cancellation during attempts and backoff."""

    @pytest.mark.asyncio
    async def test_cancel_during_backoff_aborts_quickly(self):
        """Firing the token mid-backoff ends the retry loop without another attempt."""
        operation, calls = _scripted(StatusError(429), "never")
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel, "Cancelled by caller")

        start = time.perf_counter()
        with pytest.raises(OperationCancelledError) as exc_info:
            await with_retries(operation, base_delay_ms=10_000, token=token)

        assert time.perf_counter() - start < 2
        assert len(calls) == 1
        assert exc_info.value.reason == "Cancelled by caller"

    @pytest.mark.asyncio
    async def test_cancel_aborts_in_flight_attempt(self):
        """The running attempt is cancelled, not merely abandoned."""
        aborted = asyncio.Event()

        async def slow_operation():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                aborted.set()
                raise

        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel, "Timed out after 50 ms")

        with pytest.raises(OperationCancelledError):
            await with_retries(slow_operation, token=token)

        assert aborted.is_set()

    @pytest.mark.asyncio
    async def test_already_cancelled_token_makes_no_attempt(self):
        operation, calls = _scripted("never")
        token = CancellationToken()
        token.cancel("Cancelled by caller")

        with pytest.raises(OperationCancelledError):
            await with_retries(operation, token=token)

        assert calls == []
