"""Cache backends.

The event cache and the socket token store only ever talk to a
``CacheBackend``. Two implementations exist and one is chosen at startup:

- ``RedisCacheBackend`` when ``CLINIC_SCHEDULER_REDIS_URL`` is configured and
  reachable, shared by every server process.
- ``InMemoryCacheBackend`` otherwise. Entries are process-local, so socket
  tokens issued by one process are not valid in another.

Backends raise ``TransientInfraError`` when the store cannot be reached; callers
decide how to degrade.
"""

from __future__ import annotations

import heapq
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import redis
from loguru import logger

from clinic_scheduler.exceptions import TransientInfraError


class CacheBackend(ABC):
    """Minimal key/value + set capability shared by both backends."""

    name: str = "cache"

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored at ``key`` or None."""

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` at ``key`` for ``ttl_seconds``."""

    @abstractmethod
    def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""

    @abstractmethod
    def pop(self, key: str) -> str | None:
        """Atomically read and delete ``key``."""

    @abstractmethod
    def add_member(self, key: str, member: str, ttl_seconds: int | None = None) -> None:
        """Add ``member`` to the set stored at ``key``, resetting its TTL when given."""

    @abstractmethod
    def members(self, key: str) -> set[str]:
        """Return the members of the set stored at ``key``."""

    def ping(self) -> bool:
        """Return True when the backend is reachable."""
        return True

    def close(self) -> None:
        """Release backend resources."""


class InMemoryCacheBackend(CacheBackend):
    """Process-local backend with TTL expiry.

    Reads drop an expired entry on sight; every write also sweeps the entries
    whose deadline has passed, so unread keys do not pile up. Sets only expire
    when ``add_member`` is given a TTL, like Redis sets created with SADD.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._values: dict[str, tuple[str, float]] = {}
        self._sets: dict[str, set[str]] = {}
        self._set_expiry: dict[str, float] = {}
        # (deadline, key) for every TTL ever set; stale pairs are skipped.
        self._deadlines: list[tuple[float, str]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        """Number of live keys, values and sets together."""
        with self._lock:
            self._sweep()
            return len(self._values) + len(self._sets)

    def _sweep(self) -> None:
        now = self._clock()
        while self._deadlines and self._deadlines[0][0] <= now:
            deadline, key = heapq.heappop(self._deadlines)
            entry = self._values.get(key)
            if entry is not None and entry[1] == deadline:
                del self._values[key]
            if self._set_expiry.get(key) == deadline:
                del self._set_expiry[key]
                self._sets.pop(key, None)

    def _live_value(self, key: str) -> str | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._values[key]
            return None
        return value

    def _live_set(self, key: str) -> set[str]:
        expires_at = self._set_expiry.get(key)
        if expires_at is not None and expires_at <= self._clock():
            del self._set_expiry[key]
            self._sets.pop(key, None)
        return self._sets.get(key, set())

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live_value(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._sweep()
            expires_at = self._clock() + ttl_seconds
            self._values[key] = (value, expires_at)
            heapq.heappush(self._deadlines, (expires_at, key))

    def delete(self, *keys: str) -> int:
        deleted = 0
        with self._lock:
            for key in keys:
                live = self._live_value(key) is not None or bool(self._live_set(key))
                self._values.pop(key, None)
                self._sets.pop(key, None)
                self._set_expiry.pop(key, None)
                if live:
                    deleted += 1
        return deleted

    def pop(self, key: str) -> str | None:
        with self._lock:
            value = self._live_value(key)
            self._values.pop(key, None)
            return value

    def add_member(self, key: str, member: str, ttl_seconds: int | None = None) -> None:
        with self._lock:
            self._sweep()
            self._live_set(key)
            self._sets.setdefault(key, set()).add(member)
            if ttl_seconds is not None:
                expires_at = self._clock() + ttl_seconds
                self._set_expiry[key] = expires_at
                heapq.heappush(self._deadlines, (expires_at, key))

    def members(self, key: str) -> set[str]:
        with self._lock:
            return set(self._live_set(key))

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._values.clear()
            self._sets.clear()
            self._set_expiry.clear()
            self._deadlines.clear()


class RedisCacheBackend(CacheBackend):
    """Redis backend; every Redis failure surfaces as ``TransientInfraError``."""

    name = "redis"

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheBackend":
        """Create a backend from a Redis URL (no connection attempt yet)."""
        return cls(redis.Redis.from_url(url, decode_responses=True, socket_timeout=2, socket_connect_timeout=2))

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis GET failed: {e}") from e

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis SET failed: {e}") from e

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self._client.delete(*keys))
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis DEL failed: {e}") from e

    def pop(self, key: str) -> str | None:
        try:
            return self._client.getdel(key)
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis GETDEL failed: {e}") from e

    def add_member(self, key: str, member: str, ttl_seconds: int | None = None) -> None:
        try:
            pipe = self._client.pipeline()
            pipe.sadd(key, member)
            if ttl_seconds is not None:
                pipe.expire(key, ttl_seconds)
            pipe.execute()
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis SADD failed: {e}") from e

    def members(self, key: str) -> set[str]:
        try:
            return set(self._client.smembers(key))
        except redis.RedisError as e:
            raise TransientInfraError(f"Redis SMEMBERS failed: {e}") from e

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("Redis ping failed: {}", e)
            return False

    def close(self) -> None:
        self._client.close()


def create_cache_backend(redis_url: str | None) -> CacheBackend:
    """Select the backend for this process.

    Falls back to the in-memory backend when no URL is configured or Redis does
    not answer a ping.
    """
    if redis_url:
        backend = RedisCacheBackend.from_url(redis_url)
        if backend.ping():
            logger.info("Redis connected, using shared cache backend")
            return backend
        backend.close()
        logger.warning("Redis unavailable, using in-memory cache backend")
    else:
        logger.info("No Redis URL configured, using in-memory cache backend")
    return InMemoryCacheBackend()
