# src/remote/failure_category.py — v1
"""Failure categories for cached remote lookup failures.

Each category drives the TTL a cached failure is kept for:
- not_found (404): long TTL, the resource will not appear on its own
- auth_error (401/403): long TTL, credentials/permissions won't self-resolve
- rate_limited (429): short TTL, honor the rate limit
- server_error (5xx): medium TTL
- timeout / connection_error: short TTL, network issues are often transient
- client_error (other 4xx): long TTL, bad request data won't self-fix
- unknown: default TTL
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class FailureCategory(str, Enum):
    """Closed set of reasons a remote lookup failed."""

    NOT_FOUND = "not_found"
    AUTH_ERROR = "auth_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, value: Any) -> FailureCategory:
        """Map any value to a category, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (TypeError, ValueError):
            return cls.UNKNOWN

    @property
    def is_transient(self) -> bool:
        """True for failures expected to resolve without intervention."""
        return self in TRANSIENT_CATEGORIES


TRANSIENT_CATEGORIES: frozenset[FailureCategory] = frozenset({
    FailureCategory.TIMEOUT,
    FailureCategory.CONNECTION_ERROR,
    FailureCategory.SERVER_ERROR,
    FailureCategory.RATE_LIMITED,
})


def is_transient(category: FailureCategory | str) -> bool:
    """Check whether a category (member or raw value) is transient.

    Unrecognized strings are never transient.
    """
    if isinstance(category, FailureCategory):
        return category.is_transient
    try:
        return FailureCategory(category).is_transient
    except ValueError:
        return False
