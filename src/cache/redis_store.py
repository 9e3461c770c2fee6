# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments: every process pointing
at the same Redis shares the same negative cache.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from failcache.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "failcache:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed store; values are JSON strings written with SET EX."""

    def __init__(self, redis_url: str, key_prefix: str = _KEY_PREFIX) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._key_prefix = key_prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get(self, key: str) -> dict[str, Any] | None:
        """Retrieve a value; undecodable payloads read as absent."""
        data = self._client.get(self._redis_key(key))
        if data is None:
            return None
        try:
            value = json.loads(data)
        except (TypeError, ValueError) as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None
        if not isinstance(value, dict):
            logger.warning("Ignoring non-object cache entry %s", key)
            return None
        return value

    def put(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """Store a value with an expiry; redis owns the TTL."""
        redis_key = self._redis_key(key)
        if ttl_seconds <= 0:
            self._client.delete(redis_key)
            return
        self._client.set(redis_key, json.dumps(value, default=str), ex=ttl_seconds)

    def forget(self, key: str) -> bool:
        return bool(self._client.delete(self._redis_key(key)))

    def ttl(self, key: str) -> int | None:
        """Remaining lifetime in seconds, or None when absent."""
        remaining = self._client.ttl(self._redis_key(key))
        if remaining is None or remaining < 0:
            return None
        return int(remaining)

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
