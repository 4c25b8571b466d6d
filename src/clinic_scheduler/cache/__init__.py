"""Cache layer: interchangeable backends and the caches built on them."""

from functools import lru_cache

from clinic_scheduler.cache.backend import CacheBackend, InMemoryCacheBackend, RedisCacheBackend, create_cache_backend
from clinic_scheduler.cache.time_range_cache import KeyedCache, TimeRangeCache
from clinic_scheduler.settings import get_settings


@lru_cache
def get_cache_backend() -> CacheBackend:
    """Get the process-wide cache backend, selected on first use."""
    return create_cache_backend(get_settings().redis_url)


@lru_cache
def get_events_cache() -> TimeRangeCache:
    """Get the doctor event window cache singleton."""
    return TimeRangeCache(get_cache_backend(), ttl_seconds=get_settings().cache_ttl_seconds)


@lru_cache
def get_directory_cache() -> KeyedCache:
    """Get the patient directory cache singleton."""
    return KeyedCache(get_cache_backend(), ttl_seconds=get_settings().cache_ttl_seconds)


__all__ = [
    "CacheBackend",
    "InMemoryCacheBackend",
    "KeyedCache",
    "RedisCacheBackend",
    "TimeRangeCache",
    "create_cache_backend",
    "get_cache_backend",
    "get_directory_cache",
    "get_events_cache",
]
