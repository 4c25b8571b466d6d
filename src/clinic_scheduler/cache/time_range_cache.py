"""Caches built on a ``CacheBackend``.

``KeyedCache`` stores one serialized payload per key. ``TimeRangeCache``
stores payloads per (subject, window) and keeps, for every subject, a set of
its live keys so that one mutation can drop all of that subject's windows
without scanning the keyspace.

Neither cache ever raises because of the backend: failures are logged and
reads degrade to a miss, writes to a no-op.
"""

from loguru import logger

from clinic_scheduler.cache.backend import CacheBackend
from clinic_scheduler.constants import EVENTS_KEY_PREFIX, EVENTS_KEYS_SET_PREFIX
from clinic_scheduler.exceptions import TransientInfraError

DEFAULT_TTL_SECONDS = 5 * 60


class KeyedCache:
    """Best-effort cache of serialized payloads under fixed keys."""

    def __init__(self, backend: CacheBackend, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> str | None:
        try:
            return self.backend.get(key)
        except TransientInfraError as e:
            logger.warning("Cache read failed for {}: {}", key, e)
            return None

    def put(self, key: str, payload: str) -> None:
        try:
            self.backend.set(key, payload, self.ttl_seconds)
        except TransientInfraError as e:
            logger.warning("Cache write failed for {}: {}", key, e)

    def delete(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except TransientInfraError as e:
            logger.warning("Cache delete failed for {}: {}", key, e)


class TimeRangeCache(KeyedCache):
    """Cache of windowed listings, invalidated per subject."""

    def __init__(
        self,
        backend: CacheBackend,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = EVENTS_KEY_PREFIX,
        keys_set_prefix: str = EVENTS_KEYS_SET_PREFIX,
    ):
        super().__init__(backend, ttl_seconds)
        self.key_prefix = key_prefix
        self.keys_set_prefix = keys_set_prefix

    def window_key(self, subject_id: str, window_start: str, window_end: str) -> str:
        return f"{self.key_prefix}{subject_id}:{window_start}:{window_end}"

    def keys_set_key(self, subject_id: str) -> str:
        return f"{self.keys_set_prefix}{subject_id}"

    def get_window(self, subject_id: str, window_start: str, window_end: str) -> str | None:
        """Return the cached payload for the window, or None on a miss."""
        payload = self.get(self.window_key(subject_id, window_start, window_end))
        logger.trace("Cache {} for {} [{}, {}]", "hit" if payload is not None else "miss", subject_id, window_start, window_end)
        return payload

    def put_window(self, subject_id: str, window_start: str, window_end: str, payload: str) -> None:
        """Store the payload and register its key under the subject."""
        key = self.window_key(subject_id, window_start, window_end)
        try:
            self.backend.set(key, payload, self.ttl_seconds)
            self.backend.add_member(self.keys_set_key(subject_id), key, self.ttl_seconds)
        except TransientInfraError as e:
            logger.warning("Cache write failed for {}: {}", key, e)

    def invalidate(self, subject_id: str) -> int:
        """Delete every cached window of the subject, then its key set.

        Returns:
            Number of window keys that were registered for the subject
        """
        keys_set = self.keys_set_key(subject_id)
        try:
            keys = self.backend.members(keys_set)
            if keys:
                self.backend.delete(*keys)
                self.backend.delete(keys_set)
        except TransientInfraError as e:
            logger.warning("Cache invalidation failed for {}: {}", subject_id, e)
            return 0
        logger.debug("Invalidated {} cached window(s) for {}", len(keys), subject_id)
        return len(keys)
