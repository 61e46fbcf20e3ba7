"""
Bounded retry for coroutine-based operations.

Retries an async operation a fixed number of times with a fixed delay
between attempts. Both exceptions and "soft" failures (a returned value
that the caller classifies as unsuccessful, such as a failed
ServiceResult) count as failed attempts.

The sleep primitive is injectable so tests can run without real delays
and assert on the requested waits.

Usage:
    from core.retry import retry_async

    outcome = await retry_async(
        lambda: canceller.cancel_user_subscription(admin, email),
        attempts=2,
        delay=0.5,
        is_success=lambda result: result.success,
        describe_failure=lambda result: result.error,
        label="subscription cancellation",
    )
    if not outcome.succeeded:
        print(outcome.last_error)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class AttemptRecord:
    """Outcome of a single attempt."""

    attempt: int
    succeeded: bool
    error: str | None = None


@dataclass
class RetryOutcome(Generic[T]):
    """
    Aggregate result of a retried operation.

    Attributes:
        succeeded: Whether any attempt succeeded
        attempts: Number of attempts actually made
        value: Return value of the last attempt that returned (None if it raised)
        last_error: Description of the most recent failure
        history: Per-attempt records, in order
    """

    succeeded: bool
    attempts: int
    value: T | None = None
    last_error: str | None = None
    history: list[AttemptRecord] = field(default_factory=list)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay: float,
    is_success: Callable[[T], bool] = bool,
    describe_failure: Callable[[T], str | None] = str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "operation",
) -> RetryOutcome[T]:
    """
    Run an async operation up to `attempts` times.

    Args:
        operation: Zero-argument callable returning an awaitable
        attempts: Maximum number of attempts (>= 1)
        delay: Seconds to wait between attempts (not after the last one)
        is_success: Classifies a returned value as success or failure
        describe_failure: Builds the failure reason from a returned value
        sleep: Non-blocking sleep primitive
        label: Name used in log messages

    Returns:
        RetryOutcome describing every attempt

    Raises:
        ValueError: If attempts < 1 or delay < 0
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")
    if delay < 0:
        raise ValueError(f"delay must be >= 0, got {delay}")

    outcome: RetryOutcome[T] = RetryOutcome(succeeded=False, attempts=0)

    for attempt in range(1, attempts + 1):
        outcome.attempts = attempt
        try:
            value = await operation()
        except Exception as e:
            outcome.value = None
            outcome.last_error = f"Exception during {label}: {e}"
            logger.warning(
                f"{label} raised on attempt {attempt}/{attempts}",
                extra={"attempt": attempt, "error": str(e)},
                exc_info=True,
            )
        else:
            outcome.value = value
            if is_success(value):
                outcome.succeeded = True
                outcome.history.append(AttemptRecord(attempt=attempt, succeeded=True))
                logger.info(
                    f"{label} succeeded on attempt {attempt}/{attempts}",
                    extra={"attempt": attempt},
                )
                return outcome

            outcome.last_error = describe_failure(value) or f"{label} failed"
            logger.warning(
                f"{label} failed on attempt {attempt}/{attempts}: {outcome.last_error}",
                extra={"attempt": attempt},
            )

        outcome.history.append(
            AttemptRecord(attempt=attempt, succeeded=False, error=outcome.last_error)
        )

        if attempt < attempts:
            logger.info(f"Retrying {label} in {delay:.1f}s")
            await sleep(delay)

    return outcome
