"""Per-doctor and per-room exclusion scopes for booking transactions."""

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from uuid import UUID

import redis
import structlog
from redis import asyncio as aioredis

from clinic_scheduler.core.exceptions import ContentionTimeoutError

logger = structlog.get_logger(__name__)

# Lua script for atomic compare-and-delete
COMPARE_AND_DELETE = """
if redis.call("get", KEYS[1]) == ARGV[1] then
  return redis.call("del", KEYS[1])
else
  return 0
end
"""


def scope_keys(doctor_id: UUID, room_id: UUID | None = None) -> list[str]:
    """Lock keys covering a doctor and, optionally, a room."""
    keys = [f"doctor:{doctor_id}"]
    if room_id is not None:
        keys.append(f"room:{room_id}")
    return keys


class LockManager(ABC):
    """
    Serializes booking transactions that touch the same doctor or room.

    Keys are always taken in sorted order, so two scopes sharing keys cannot
    wait on each other crosswise. Waiting is bounded by ``timeout`` seconds;
    on expiry :class:`ContentionTimeoutError` is raised and nothing is held.
    """

    def __init__(self, timeout: float):
        """Initialize manager with the maximum wait in seconds."""
        self.timeout = timeout

    @abstractmethod
    def hold(self, keys: Iterable[str]) -> AbstractAsyncContextManager[None]:
        """Hold every key for the duration of the context."""

    def scope(
        self,
        doctor_id: UUID,
        room_id: UUID | None = None,
    ) -> AbstractAsyncContextManager[None]:
        """Hold the exclusion scope for a doctor and optional room."""
        return self.hold(scope_keys(doctor_id, room_id))

    def _timed_out(self, keys: list[str]) -> ContentionTimeoutError:
        logger.warning("lock_contention_timeout", keys=keys, timeout=self.timeout)
        return ContentionTimeoutError(keys, self.timeout)


class LocalLockManager(LockManager):
    """In-process locks; correct only when a single worker serves bookings."""

    def __init__(self, timeout: float):
        """Initialize manager with the maximum wait in seconds."""
        super().__init__(timeout)
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        self._holders[key] -= 1
        if not self._holders[key]:
            del self._holders[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Hold every key, waiting at most ``timeout`` seconds in total."""
        ordered = sorted(set(keys))
        deadline = asyncio.get_running_loop().time() + self.timeout
        acquired: list[str] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                locked = False
                try:
                    async with asyncio.timeout_at(deadline):
                        await lock.acquire()
                    locked = True
                except TimeoutError:
                    raise self._timed_out(ordered) from None
                finally:
                    if not locked:
                        self._checkin(key)
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
                self._checkin(key)

    def held_keys(self) -> list[str]:
        """Keys currently locked or waited on."""
        return sorted(self._locks)


class RedisLockManager(LockManager):
    """
    Token-based Redis locks shared by every worker.

    Each key is set with ``NX`` and a TTL so a crashed worker cannot hold a
    doctor forever, and released with compare-and-delete so a worker never
    frees a lock that expired and was taken by someone else.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        timeout: float,
        ttl_ms: int,
        retry_delay: float = 0.05,
        prefix: str = "booking_lock:",
    ):
        """
        Args:
            redis_client: asyncio Redis client (redis-py)
            timeout: Maximum wait in seconds
            ttl_ms: Lock expiry in milliseconds
            retry_delay: Base backoff between attempts in seconds
            prefix: Namespace for lock keys
        """
        super().__init__(timeout)
        self.redis = redis_client
        self.ttl_ms = ttl_ms
        self.retry_delay = retry_delay
        self.prefix = prefix

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Hold every key, waiting at most ``timeout`` seconds in total."""
        ordered = sorted(set(keys))
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        token = str(uuid.uuid4())
        acquired: list[str] = []
        try:
            for key in ordered:
                name = f"{self.prefix}{key}"
                attempt = 0
                while not await self._try_set(name, token, ordered):
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        raise self._timed_out(ordered)
                    attempt += 1
                    # Linear backoff (50ms, 100ms, 150ms...) capped by the deadline
                    await asyncio.sleep(min(self.retry_delay * attempt, remaining))
                acquired.append(name)
                logger.debug("lock_acquired", key=name)
            yield
        finally:
            for name in reversed(acquired):
                try:
                    await self.redis.eval(COMPARE_AND_DELETE, 1, name, token)
                    logger.debug("lock_released", key=name)
                except redis.RedisError as e:
                    logger.warning("lock_release_failed", key=name, error=str(e))

    async def _try_set(self, name: str, token: str, ordered: list[str]) -> bool:
        try:
            return bool(await self.redis.set(name, token, nx=True, px=self.ttl_ms))
        except redis.RedisError as e:
            logger.error("lock_backend_unavailable", key=name, error=str(e))
            raise self._timed_out(ordered) from e


def build_lock_manager(
    backend: str,
    timeout: float,
    ttl_ms: int,
    redis_client: aioredis.Redis | None = None,
) -> LockManager:
    """
    Create the configured lock manager.

    Args:
        backend: ``local`` or ``redis``
        timeout: Maximum wait in seconds
        ttl_ms: Redis lock expiry in milliseconds
        redis_client: Required for the ``redis`` backend

    Returns:
        Lock manager instance
    """
    if backend == "redis":
        if redis_client is None:
            raise ValueError("Redis lock backend requires a Redis client")
        return RedisLockManager(redis_client, timeout=timeout, ttl_ms=ttl_ms)
    if backend == "local":
        return LocalLockManager(timeout=timeout)
    raise ValueError(f"Unknown lock backend: {backend}")
