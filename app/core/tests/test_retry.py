"""
Tests for retry_async.

These tests verify the bounded retry behavior:
- Success on first attempt makes no further calls and never sleeps
- Failed results and exceptions both count as failed attempts
- Delay is requested between attempts but not after the last one
- Invalid arguments are rejected
"""

from __future__ import annotations

import pytest

from core.retry import retry_async
from core.services import ServiceResult


class RecordingSleep:
    """Sleep stand-in that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


def scripted(*results):
    """Operation returning (or raising) the given results in order."""
    calls = []

    async def operation():
        calls.append(len(calls) + 1)
        result = results[len(calls) - 1]
        if isinstance(result, Exception):
            raise result
        return result

    operation.calls = calls
    return operation


class TestRetryAsyncSuccess:
    async def test_first_attempt_success_does_not_sleep(self, sleep):
        """Should stop after one successful attempt."""
        operation = scripted(ServiceResult.success("done"))

        outcome = await retry_async(
            operation,
            attempts=3,
            delay=0.5,
            is_success=lambda r: r.success,
            sleep=sleep,
        )

        assert outcome.succeeded is True
        assert outcome.attempts == 1
        assert outcome.value.data == "done"
        assert sleep.delays == []

    async def test_success_after_failure(self, sleep):
        """Should retry a failed result and succeed on the second attempt."""
        operation = scripted(ServiceResult.failure("busy"), ServiceResult.success(None))

        outcome = await retry_async(
            operation,
            attempts=2,
            delay=0.5,
            is_success=lambda r: r.success,
            describe_failure=lambda r: r.error,
            sleep=sleep,
        )

        assert outcome.succeeded is True
        assert outcome.attempts == 2
        assert sleep.delays == [0.5]
        assert [record.succeeded for record in outcome.history] == [False, True]


class TestRetryAsyncFailure:
    async def test_exhausts_attempts_on_failed_results(self, sleep):
        """Should make exactly `attempts` calls and keep the last failure."""
        operation = scripted(
            ServiceResult.failure("first"),
            ServiceResult.failure("second"),
        )

        outcome = await retry_async(
            operation,
            attempts=2,
            delay=0.5,
            is_success=lambda r: r.success,
            describe_failure=lambda r: r.error,
            sleep=sleep,
        )

        assert outcome.succeeded is False
        assert outcome.attempts == 2
        assert operation.calls == [1, 2]
        assert outcome.last_error == "second"
        # No wait after the final attempt
        assert sleep.delays == [0.5]

    async def test_exception_counts_as_failed_attempt(self, sleep):
        """Should convert a raised exception into a failed attempt."""
        operation = scripted(RuntimeError("connection reset"), RuntimeError("still down"))

        outcome = await retry_async(
            operation,
            attempts=2,
            delay=0.25,
            label="subscription cancellation",
            sleep=sleep,
        )

        assert outcome.succeeded is False
        assert outcome.value is None
        assert outcome.last_error == "Exception during subscription cancellation: still down"
        assert sleep.delays == [0.25]

    async def test_describe_failure_fallback(self, sleep):
        """Should fall back to a generic reason when describe_failure returns None."""
        operation = scripted(None)

        outcome = await retry_async(
            operation,
            attempts=1,
            delay=0,
            describe_failure=lambda r: None,
            label="cancel subscription",
            sleep=sleep,
        )

        assert outcome.last_error == "cancel subscription failed"


class TestRetryAsyncArguments:
    @pytest.mark.parametrize("attempts", [0, -1])
    async def test_rejects_non_positive_attempts(self, attempts, sleep):
        with pytest.raises(ValueError):
            await retry_async(scripted(), attempts=attempts, delay=0, sleep=sleep)

    async def test_rejects_negative_delay(self, sleep):
        with pytest.raises(ValueError):
            await retry_async(scripted(), attempts=1, delay=-1, sleep=sleep)
