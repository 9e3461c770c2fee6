# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency.
Shares the negative cache between processes on one host. Expiry is stored
as a wall-clock deadline and checked on read; expired rows are purged lazily.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Callable

from failcache.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    expires_at REAL NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_expires_at ON cache_entries(expires_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed store with per-row expiry."""

    def __init__(
        self, db_path: Path | str, clock: Callable[[], float] | None = None
    ) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def get(self, key: str) -> dict[str, Any] | None:
        """Retrieve a value; expired rows read as absent."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT data, expires_at FROM cache_entries WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
        if row is None:
            return None
        if self._clock() >= row[1]:
            self.forget(key)
            return None
        try:
            value = json.loads(row[0])
        except ValueError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None
        return value if isinstance(value, dict) else None

    def put(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        """Store a value (upsert)."""
        if ttl_seconds <= 0:
            self.forget(key)
            return
        with self._lock:
            self._conn.execute(
                """INSERT OR REPLACE INTO cache_entries (key, data, expires_at)
                   VALUES (?, ?, ?)""",
                (key, json.dumps(value, default=str), self._clock() + ttl_seconds),
            )
            self._conn.commit()

    def forget(self, key: str) -> bool:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
            self._conn.commit()
        return cursor.rowcount > 0

    def purge_expired(self) -> int:
        """Delete expired rows. Returns number of rows removed."""
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM cache_entries WHERE expires_at <= ?", (self._clock(),)
            )
            self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
