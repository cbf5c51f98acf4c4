"""
Tests for settlement locking utilities.

Covers the Redis-based DistributedLock (with a mocked client) and the
row lock + optimistic version check in lock_for_update.
"""

import uuid

import pytest
from django.db import transaction

from settlement.exceptions import LockAcquisitionError, OrderNotFound, StaleRecordError
from settlement.locks import (
    DistributedLock,
    lock_for_update,
    order_lock_key,
    payout_lock_key,
)
from settlement.models import Order


class TestDistributedLock:
    """Tests for DistributedLock class."""

    def test_acquire_success(self, mock_redis):
        lock = DistributedLock("test:key", ttl=30, blocking=False)

        assert lock.acquire() is True
        assert lock.is_held is True
        call_args = mock_redis.set.call_args
        assert call_args[0][0] == "lock:test:key"
        assert call_args[1]["nx"] is True
        assert call_args[1]["ex"] == 30

    def test_each_acquisition_gets_its_own_token(self, mock_redis):
        first = DistributedLock("test:key1", blocking=False)
        second = DistributedLock("test:key2", blocking=False)

        first.acquire()
        second.acquire()

        assert first._token != second._token

    def test_non_blocking_raises_when_held(self, mock_redis):
        mock_redis.set.return_value = False

        lock = DistributedLock("test:key", blocking=False)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert "already held" in str(exc_info.value)
        assert exc_info.value.details["key"] == "lock:test:key"
        assert lock.is_held is False

    def test_blocking_waits_and_acquires(self, mock_redis, mocker):
        mocker.patch.object(DistributedLock, "POLL_INTERVAL", 0)
        mock_redis.set.side_effect = [False, False, True]

        lock = DistributedLock("test:key", blocking=True, timeout=1.0)

        assert lock.acquire() is True
        assert mock_redis.set.call_count == 3

    def test_blocking_timeout_raises(self, mock_redis, mocker):
        mocker.patch.object(DistributedLock, "POLL_INTERVAL", 0.01)
        mock_redis.set.return_value = False

        lock = DistributedLock("test:key", blocking=True, timeout=0.05)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert "within 0.05s" in str(exc_info.value)
        assert exc_info.value.details["timeout"] == 0.05
        assert lock.is_held is False

    def test_release_runs_token_checked_script(self, mock_redis):
        lock = DistributedLock("test:key", blocking=False)
        lock.acquire()
        token = lock._token

        assert lock.release() is True
        assert lock.is_held is False
        args = mock_redis.eval.call_args[0]
        assert args[0] == DistributedLock.RELEASE_SCRIPT
        assert args[1:] == (1, "lock:test:key", token)

    def test_release_when_lock_expired_and_taken(self, mock_redis):
        mock_redis.eval.return_value = 0

        lock = DistributedLock("test:key", blocking=False)
        lock.acquire()

        assert lock.release() is False

    def test_release_without_acquire(self, mock_redis):
        lock = DistributedLock("test:key", blocking=False)

        assert lock.release() is False
        mock_redis.eval.assert_not_called()

    def test_release_is_idempotent(self, mock_redis):
        lock = DistributedLock("test:key", blocking=False)
        lock.acquire()

        lock.release()
        assert lock.release() is False
        mock_redis.eval.assert_called_once()

    def test_extend_uses_original_ttl(self, mock_redis):
        lock = DistributedLock("test:key", ttl=30, blocking=False)
        lock.acquire()

        assert lock.extend() is True
        assert mock_redis.eval.call_args[0][4] == 30

    def test_extend_with_custom_ttl(self, mock_redis):
        lock = DistributedLock("test:key", ttl=30, blocking=False)
        lock.acquire()

        lock.extend(ttl=90)

        assert mock_redis.eval.call_args[0][0] == DistributedLock.EXTEND_SCRIPT
        assert mock_redis.eval.call_args[0][4] == 90

    def test_extend_without_lock(self, mock_redis):
        lock = DistributedLock("test:key", blocking=False)

        assert lock.extend() is False
        mock_redis.eval.assert_not_called()

    def test_context_manager_releases_on_exception(self, mock_redis):
        with pytest.raises(ValueError, match="boom"):
            with DistributedLock("test:key", blocking=False):
                raise ValueError("boom")

        mock_redis.eval.assert_called_once()

    def test_lock_keys(self):
        order_id = uuid.uuid4()

        assert order_lock_key(order_id) == f"settlement:order:{order_id}"
        assert payout_lock_key("abc") == "settlement:payout:abc"


class TestLockForUpdate:
    def test_returns_row(self, paid_order):
        with transaction.atomic():
            order = lock_for_update(Order, paid_order.id)

        assert order == paid_order

    def test_matching_version(self, paid_order):
        with transaction.atomic():
            order = lock_for_update(Order, paid_order.id, expected_version=paid_order.version)

        assert order.version == paid_order.version

    def test_stale_version_raises(self, paid_order):
        with pytest.raises(StaleRecordError) as exc_info:
            with transaction.atomic():
                lock_for_update(Order, paid_order.id, expected_version=paid_order.version + 1)

        assert exc_info.value.details["current_version"] == paid_order.version
        assert exc_info.value.http_status == 409

    def test_missing_row_raises_given_error(self, db):
        with pytest.raises(OrderNotFound):
            with transaction.atomic():
                lock_for_update(Order, uuid.uuid4(), not_found_error=OrderNotFound)
