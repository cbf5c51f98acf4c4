"""
Concurrency control for settlement operations.

Two mechanisms work together:

1. **Row locks + optimistic versions** (lock_for_update)
   - ``select_for_update()`` serialises read-decide-write per order/payout
   - An optional expected version turns a silent overwrite of someone
     else's change into StaleRecordError

2. **Distributed locks** (DistributedLock)
   - Redis ``SET NX EX`` keyed by entity, taken by batch workers before
     they touch a row so an overlapping sweep skips instead of waiting
   - Token-checked release via a Lua script

Usage:
    from settlement.locks import DistributedLock, lock_for_update, order_lock_key

    with DistributedLock(order_lock_key(order_id), ttl=30, blocking=False):
        with transaction.atomic():
            order = lock_for_update(Order, order_id, expected_version=3)
            ...
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, TypeVar

from django.db import models

from django_redis import get_redis_connection

from core.exceptions import NotFoundError
from settlement.exceptions import LockAcquisitionError, StaleRecordError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

T = TypeVar("T", bound=models.Model)

LOCK_PREFIX = "lock:"


def order_lock_key(order_id: Any) -> str:
    return f"settlement:order:{order_id}"


def payout_lock_key(payout_id: Any) -> str:
    return f"settlement:payout:{payout_id}"


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis lock with a TTL and an ownership token.

    The TTL bounds how long a crashed worker can hold the lock. Only the
    holder of the token can release or extend it.

    Example:
        lock = DistributedLock(payout_lock_key(payout.id), ttl=60, blocking=False)
        try:
            with lock:
                PayoutService.process_payout(payout.id, actor=None)
        except LockAcquisitionError:
            # Another worker is on it
            return {"status": "lock_failed"}

    Args:
        key: Lock identifier (prefixed with "lock:")
        ttl: Seconds until the lock expires on its own
        blocking: Wait for the lock instead of failing immediately
        timeout: Maximum wait in seconds when blocking
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    end
    return 0
    """

    EXTEND_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("expire", KEYS[1], ARGV[2])
    end
    return 0
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"{LOCK_PREFIX}{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def _try_acquire(self) -> bool:
        return bool(self.redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Raises:
            LockAcquisitionError: If the lock is held elsewhere (non-blocking)
                or could not be taken within ``timeout`` (blocking)
        """
        self._token = uuid.uuid4().hex

        if not self.blocking:
            if self._try_acquire():
                return True
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )

        deadline = time.monotonic() + self.timeout
        while time.monotonic() < deadline:
            if self._try_acquire():
                return True
            time.sleep(self.POLL_INTERVAL)

        self._token = None
        raise LockAcquisitionError(
            f"Failed to acquire lock '{self.key}' within {self.timeout}s",
            details={"key": self.key, "timeout": self.timeout},
        )

    def release(self) -> bool:
        """
        Release the lock if we still hold it. Safe to call more than once.

        Returns:
            True if the lock was deleted by this call
        """
        if self._token is None:
            return False
        token, self._token = self._token, None
        return bool(self.redis.eval(self.RELEASE_SCRIPT, 1, self.key, token))

    def extend(self, ttl: int | None = None) -> bool:
        """Reset the lock's TTL (to ``ttl`` or the original TTL) if we hold it."""
        if self._token is None:
            return False
        return bool(
            self.redis.eval(self.EXTEND_SCRIPT, 1, self.key, self._token, ttl or self.ttl)
        )

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False


# =============================================================================
# Row Locks
# =============================================================================


def lock_for_update(
    model_class: type[T],
    pk: Any,
    expected_version: int | None = None,
    not_found_error: type[NotFoundError] = NotFoundError,
) -> T:
    """
    Lock a row for the rest of the current transaction.

    Must be called inside ``transaction.atomic()``. When
    ``expected_version`` is given the row must still carry that version.

    Args:
        model_class: Model with a ``version`` field
        pk: Primary key of the row
        expected_version: Version the caller last saw, or None to skip the check
        not_found_error: NotFoundError subclass raised for a missing row

    Raises:
        not_found_error: If the row does not exist
        StaleRecordError: If the version moved on
    """
    model_name = model_class.__name__
    instance = model_class.objects.select_for_update().filter(pk=pk).first()
    if instance is None:
        raise not_found_error(
            f"{model_name} {pk} not found",
            details={"pk": str(pk)},
        )

    if expected_version is not None and instance.version != expected_version:
        raise StaleRecordError(
            f"{model_name} {pk} has been modified "
            f"(expected version {expected_version}, current {instance.version})",
            details={
                "pk": str(pk),
                "expected_version": expected_version,
                "current_version": instance.version,
            },
        )

    return instance


__all__ = [
    "DistributedLock",
    "lock_for_update",
    "order_lock_key",
    "payout_lock_key",
]
