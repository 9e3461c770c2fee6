# src/cache/models.py — v1
"""Cache domain models: CachedFailureRecord.

A record is what the negative cache persists for one failed lookup. It is
stored as a plain JSON-compatible dict so any key-value backend can hold it.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from failcache.remote.failure_category import FailureCategory

UNKNOWN = "unknown"


class CachedFailureRecord(BaseModel):
    """Negative-cache entry describing the last failure of a lookup."""

    model_config = ConfigDict(frozen=True)

    cached_at: str = UNKNOWN
    exception_class: str = UNKNOWN
    exception_message: str = UNKNOWN
    exception_code: int = 0
    http_status: int | None = None
    failure_category: FailureCategory = FailureCategory.UNKNOWN
    repository: str = UNKNOWN
    lookup_type: str = UNKNOWN
    identifiers: list[str] = Field(default_factory=list)

    # --- Lenient readers for payloads written by other versions ---

    @field_validator(
        "cached_at", "exception_class", "exception_message", "repository", "lookup_type",
        mode="before",
    )
    @classmethod
    def _coerce_str(cls, v: Any) -> str:
        if v is None:
            return UNKNOWN
        return v if isinstance(v, str) else str(v)

    @field_validator("exception_code", mode="before")
    @classmethod
    def _coerce_code(cls, v: Any) -> int:
        if isinstance(v, bool) or not isinstance(v, int):
            return 0
        return v

    @field_validator("http_status", mode="before")
    @classmethod
    def _coerce_status(cls, v: Any) -> int | None:
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v

    @field_validator("failure_category", mode="before")
    @classmethod
    def _coerce_category(cls, v: Any) -> FailureCategory:
        return FailureCategory.coerce(v)

    @field_validator("identifiers", mode="before")
    @classmethod
    def _coerce_identifiers(cls, v: Any) -> list[str]:
        if v is None or isinstance(v, (str, bytes)) or not isinstance(v, (list, tuple)):
            return []
        return [str(i) for i in v]

    # --- Helpers ---

    @property
    def short_repository(self) -> str:
        """Repository identity without its module/namespace prefix."""
        return short_name(self.repository)

    @property
    def cached_at_datetime(self) -> datetime | None:
        try:
            parsed = datetime.fromisoformat(self.cached_at)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def age_seconds(self, now: datetime | None = None) -> float | None:
        """Seconds since the failure was cached, or None if unparseable."""
        cached = self.cached_at_datetime
        if cached is None:
            return None
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return max(0.0, (now - cached).total_seconds())

    def to_cache(self) -> dict[str, Any]:
        """Serialize for a key-value store."""
        return self.model_dump(mode="json")

    @classmethod
    def from_cache(cls, data: Mapping[str, Any]) -> CachedFailureRecord:
        """Deserialize a stored payload, defaulting missing or malformed fields."""
        return cls.model_validate(dict(data))


def short_name(identity: str) -> str:
    """Last segment of a dotted, colon or backslash separated identity."""
    for sep in ("\\", ":", "."):
        identity = identity.rsplit(sep, 1)[-1]
    return identity or UNKNOWN
