# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from failcache.cache.base_cache_store import BaseCacheStore
from failcache.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from failcache.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    if backend == "sqlite":
        from failcache.cache.sqlite_store import SqliteCacheStore
        cache_root = "~/.failcache" if settings is None else str(settings.cache_root)
        return SqliteCacheStore(db_path=f"{cache_root}/failcache.db")

    if backend == "redis":
        from failcache.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
