# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings. Nested values such
as FAILURE_CACHE_TTL_BY_CATEGORY are read as JSON, e.g.
FAILURE_CACHE_TTL_BY_CATEGORY='{"not_found": 600, "timeout": 30}'.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from failcache.remote.failure_category import FailureCategory

DEFAULT_FAILURE_CACHE_TTL = 120


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Failed lookup cache ===
    failure_cache_ttl: int = DEFAULT_FAILURE_CACHE_TTL
    failure_cache_ttl_by_category: dict[FailureCategory, int] = {}
    failure_cache_key_prefix: str = "remote_failure"

    # === Cache backend ===
    cache_backend: Literal["memory", "sqlite", "redis"] = "memory"
    cache_root: Path = Path("~/.failcache")
    cache_redis_url: str = ""

    # === Remote service ===
    remote_base_url: str = ""
    remote_timeout_seconds: float = 10.0
    remote_max_url_length: int = 2048

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30
    service_name: str = "failcache"

    # --- Validators ---

    @field_validator("failure_cache_ttl", mode="before")
    @classmethod
    def default_ttl_when_unset(cls, v: Any) -> Any:
        """An explicit null/empty value falls back to the default TTL."""
        if v is None or v == "":
            return DEFAULT_FAILURE_CACHE_TTL
        return v

    @field_validator("failure_cache_ttl")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("failure_cache_ttl must be >= 0")
        return v

    @field_validator("failure_cache_ttl_by_category", mode="before")
    @classmethod
    def empty_overrides_when_unset(cls, v: Any) -> Any:
        if v is None or v == "":
            return {}
        return v

    @field_validator("failure_cache_ttl_by_category")
    @classmethod
    def validate_category_ttls(cls, v: dict[FailureCategory, int]) -> dict[FailureCategory, int]:
        negative = sorted(str(k) for k, ttl in v.items() if ttl < 0)
        if negative:
            raise ValueError(
                f"failure_cache_ttl_by_category values must be >= 0: {', '.join(negative)}"
            )
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not self.failure_cache_key_prefix.strip():
            errors.append("FAILURE_CACHE_KEY_PREFIX must not be empty")

        if self.remote_timeout_seconds <= 0:
            errors.append("REMOTE_TIMEOUT_SECONDS must be > 0")

        if self.log_retention < 0:
            errors.append("LOG_RETENTION must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-service config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
