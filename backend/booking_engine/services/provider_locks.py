# backend/booking_engine/services/provider_locks.py
"""
Per-key serialization for booking writes.

Key format: booking-engine:lock:{key}, e.g. provider:12 or booking:345.

Two backends with the same hold() contract:
- InProcessLocks: threading.Lock per key (single service process)
- RedisLocks:     redis lock with TTL (several processes / hosts)

Both fail closed: a lock that cannot be taken within wait_seconds is a
ConflictError (the caller retries), a Redis failure is an UnexpectedError.
A store-level overlap constraint stays in place underneath either backend.
"""

import logging
import threading
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from redis import Redis
from redis.exceptions import LockError, RedisError

from ..config import settings
from ..errors import ConflictError, UnexpectedError

logger = logging.getLogger(__name__)

KEY_PREFIX = "booking-engine:lock"


def provider_key(provider_id: int) -> str:
    return f"provider:{provider_id}"


def booking_key(booking_id: int) -> str:
    return f"booking:{booking_id}"


def _busy(key: str) -> ConflictError:
    return ConflictError(
        "Another request is updating this schedule. Please retry.",
        code="LockBusy",
        details={"lock": key},
    )


class InProcessLocks:
    """threading.Lock registry keyed by string."""

    def __init__(self, wait_seconds: float = 5.0):
        self.wait_seconds = wait_seconds
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._lock_for(key)
        if not lock.acquire(timeout=self.wait_seconds):
            logger.warning(f"Lock busy: {key}")
            raise _busy(key)
        try:
            yield
        finally:
            lock.release()


class RedisLocks:
    """Redis-backed locks shared by all service processes."""

    def __init__(self, redis: Redis, ttl_seconds: float = 10.0, wait_seconds: float = 5.0):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds

    def _name(self, key: str) -> str:
        return f"{KEY_PREFIX}:{key}"

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.redis.lock(
            self._name(key),
            timeout=self.ttl_seconds,
            blocking_timeout=self.wait_seconds,
        )
        try:
            acquired = lock.acquire()
        except RedisError as e:
            logger.error(f"Lock backend unavailable for {key}: {e}")
            raise UnexpectedError("Lock backend unavailable", details={"lock": key}) from e

        if not acquired:
            logger.warning(f"Lock busy: {key}")
            raise _busy(key)

        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # TTL ran out while held; the store constraint still guards overlaps
                logger.warning(f"Lock {key} expired before release")


LockRegistry = InProcessLocks | RedisLocks


@lru_cache
def get_provider_locks() -> LockRegistry:
    """Lock registry for this process (FastAPI dependency)."""
    from ..redis_client import redis_client

    return build_locks(redis_client)


def build_locks(redis: Optional[Redis]) -> LockRegistry:
    if redis is not None:
        return RedisLocks(
            redis,
            ttl_seconds=settings.lock_timeout_seconds,
            wait_seconds=settings.lock_wait_seconds,
        )
    return InProcessLocks(wait_seconds=settings.lock_wait_seconds)
