# src/remote/ttl_policy.py — v1
"""Cache lifetime per failure category."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from failcache.remote.failure_category import FailureCategory

if TYPE_CHECKING:
    from failcache.config.settings import Settings

DEFAULT_TTL_SECONDS = 120


class FailureTtlPolicy:
    """Per-category TTL overrides with a single default fallback."""

    def __init__(
        self,
        default_ttl: int | None = DEFAULT_TTL_SECONDS,
        overrides: Mapping[FailureCategory | str, int] | None = None,
    ) -> None:
        self.default_ttl = DEFAULT_TTL_SECONDS if default_ttl is None else int(default_ttl)
        # Keyed by raw value so members and plain strings resolve alike
        self.overrides: dict[str, int] = {
            (k.value if isinstance(k, FailureCategory) else str(k)): int(v)
            for k, v in (overrides or {}).items()
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> FailureTtlPolicy:
        return cls(
            default_ttl=settings.failure_cache_ttl,
            overrides=settings.failure_cache_ttl_by_category,
        )

    def ttl_for_category(self, category: FailureCategory | str) -> int:
        """TTL in seconds: the category override if configured, else the default."""
        key = category.value if isinstance(category, FailureCategory) else str(category)
        if key in self.overrides:
            return self.overrides[key]
        return self.default_ttl

    def __repr__(self) -> str:
        return f"FailureTtlPolicy(default_ttl={self.default_ttl}, overrides={self.overrides})"
