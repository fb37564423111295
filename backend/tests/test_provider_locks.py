"""
Lock registry backends.
"""

import threading
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, LockError

from booking_engine.errors import ConflictError, UnexpectedError
from booking_engine.services.provider_locks import (
    InProcessLocks,
    RedisLocks,
    booking_key,
    build_locks,
    provider_key,
)


def test_key_format():
    assert provider_key(12) == "provider:12"
    assert booking_key(345) == "booking:345"


class TestInProcessLocks:
    def test_key_can_be_taken_again_after_release(self):
        locks = InProcessLocks(wait_seconds=0.1)

        with locks.hold("provider:1"):
            pass
        with locks.hold("provider:1"):
            pass

    def test_busy_key_is_a_conflict(self):
        locks = InProcessLocks(wait_seconds=0.05)
        held = threading.Event()
        release = threading.Event()

        def _holder():
            with locks.hold("provider:1"):
                held.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=_holder)
        thread.start()
        try:
            held.wait(timeout=5)
            with pytest.raises(ConflictError) as exc:
                with locks.hold("provider:1"):
                    pass
            assert exc.value.code == "LockBusy"

            # Other keys are independent
            with locks.hold("provider:2"):
                pass
        finally:
            release.set()
            thread.join()

    def test_lock_released_on_error(self):
        locks = InProcessLocks(wait_seconds=0.05)

        with pytest.raises(RuntimeError):
            with locks.hold("provider:1"):
                raise RuntimeError("boom")

        with locks.hold("provider:1"):
            pass


class TestRedisLocks:
    def _redis(self, acquired=True):
        redis = MagicMock()
        lock = redis.lock.return_value
        lock.acquire.return_value = acquired
        return redis, lock

    def test_acquire_and_release(self):
        redis, lock = self._redis()
        locks = RedisLocks(redis, ttl_seconds=10, wait_seconds=5)

        with locks.hold("provider:7"):
            lock.release.assert_not_called()

        redis.lock.assert_called_once_with(
            "booking-engine:lock:provider:7", timeout=10, blocking_timeout=5
        )
        lock.release.assert_called_once()

    def test_busy_is_a_conflict(self):
        redis, lock = self._redis(acquired=False)

        with pytest.raises(ConflictError):
            with RedisLocks(redis).hold("provider:7"):
                pass

        lock.release.assert_not_called()

    def test_backend_failure_is_unexpected(self):
        redis, lock = self._redis()
        lock.acquire.side_effect = RedisConnectionError("refused")

        with pytest.raises(UnexpectedError):
            with RedisLocks(redis).hold("provider:7"):
                pass

    def test_expired_lock_on_release_is_tolerated(self):
        redis, lock = self._redis()
        lock.release.side_effect = LockError("expired")

        with RedisLocks(redis).hold("provider:7"):
            pass


def test_build_locks_picks_backend():
    assert isinstance(build_locks(None), InProcessLocks)
    assert isinstance(build_locks(MagicMock()), RedisLocks)
