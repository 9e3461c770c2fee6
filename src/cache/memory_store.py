# src/cache/memory_store.py — v1
"""In-process cache store (CACHE_BACKEND=memory).

Entries live in a dict with a per-key monotonic deadline. Only shared
between callers in the same process; use redis or sqlite across processes.
"""

from __future__ import annotations

import copy
import threading
import time
from typing import Any, Callable

from failcache.cache.base_cache_store import BaseCacheStore


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed store with TTL expiry, safe for threads in one process."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        """Retrieve a value; expired entries are evicted on read."""
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def put(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """Store a deep copy of the value until now + ttl_seconds."""
        with self._lock:
            if ttl_seconds <= 0:
                self._entries.pop(key, None)
                return
            self._entries[key] = (self._clock() + ttl_seconds, copy.deepcopy(value))

    def forget(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def flush(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at, _ in self._entries.values() if expires_at > now)
