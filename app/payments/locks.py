"""
Distributed locking for refund initiation.

Refund initiation reads a payment's remaining refundable balance, calls
the gateway and inserts the refund. Two admins refunding the same
payment at once (in different workers, or in different event loops of
one worker) must not both pass the balance check, so that sequence runs
under a Redis lock keyed by payment id.

Features:
    - Redis SET NX with a TTL, so a crashed holder cannot block forever
    - Owner tokens, so only the holder can release
    - Sync (`with`) and async (`async with`) context managers; the async
      form waits in a worker thread and never blocks the event loop

Usage:
    from payments.locks import payment_refund_lock

    async with payment_refund_lock("pay_123"):
        # Only one initiation for pay_123 runs at a time
        ...
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING

from asgiref.sync import sync_to_async
from django.conf import settings
from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Example:
        with DistributedLock("refund:payment:pay_123", ttl=30):
            ...

        lock = DistributedLock("refund:payment:pay_123", blocking=False)
        try:
            async with lock:
                ...
        except LockAcquisitionError:
            # Another worker holds the lock
            ...

    Args:
        key: Lock identifier (will be prefixed with "lock:")
        ttl: Lock TTL in seconds (auto-releases after this time)
        blocking: If True, acquire() waits until the lock is available
        timeout: Maximum wait time in seconds (only if blocking=True)

    Note:
        The TTL must be longer than the guarded operation, which
        includes one gateway call.
    """

    # Lua script for atomic check-and-delete (release)
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        """Get Redis connection (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Returns:
            True once the lock is held

        Raises:
            LockAcquisitionError: Lock is held elsewhere (non-blocking)
                or was not released within `timeout` (blocking)
        """
        token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            end_time = time.monotonic() + self.timeout
            while time.monotonic() < end_time:
                if redis.set(self.key, token, nx=True, ex=self.ttl):
                    self._token = token
                    return True
                time.sleep(self.POLL_INTERVAL)

            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not redis.set(self.key, token, nx=True, ex=self.ttl):
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        self._token = token
        return True

    def release(self) -> bool:
        """
        Release the lock if we hold it.

        Returns:
            True if the lock was released, False if we did not hold it
            (never acquired, or expired and taken by someone else)
        """
        if self._token is None:
            return False

        redis = self._get_redis()
        result = redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        """Check if we currently hold the lock."""
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False

    async def __aenter__(self) -> DistributedLock:
        await sync_to_async(self.acquire, thread_sensitive=False)()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        await sync_to_async(self.release, thread_sensitive=False)()
        return False


def payment_refund_lock(payment_id: str) -> DistributedLock:
    """Lock guarding the balance check and insert for one payment."""
    return DistributedLock(
        f"refund:payment:{payment_id}",
        ttl=settings.REFUND_LOCK_TTL_SECONDS,
        timeout=settings.REFUND_LOCK_TIMEOUT_SECONDS,
    )


__all__ = [
    "DistributedLock",
    "payment_refund_lock",
]
