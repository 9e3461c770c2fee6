# src/cache/base_cache_store.py — v2
"""Abstract key-value store interface for the failed-lookup cache.

Values are JSON-compatible dicts. Every write carries a TTL; expired keys
read as absent. Backends do not retry or swallow connection errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    def get(self, key: str) -> dict[str, Any] | None:
        """Retrieve a value, or None when absent or expired."""

    @abstractmethod
    def put(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """Store a value for ttl_seconds, replacing any previous value.

        A TTL of zero or less removes the key instead.
        """

    @abstractmethod
    def forget(self, key: str) -> bool:
        """Remove a key. Returns True if something was deleted."""

    def close(self) -> None:
        """Release backend resources. No-op by default."""
