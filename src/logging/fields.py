# src/logging/fields.py — v1
"""Standard structured log field names.

Audit entries pass their payload as ``extra={"data": {...}}`` keyed by these
names so every service emits the same field set.
"""

from __future__ import annotations


class LogFields:
    """Field name constants for structured log payloads."""

    # Service identification
    SERVICE = "service"

    # Feature / operation
    FEATURE = "feature"
    ACTION = "action"

    # Errors
    ERROR_MESSAGE = "error_message"
    ERROR_CODE = "error_code"
    ERROR_TYPE = "error_type"

    # Remote API calls
    API_SERVICE = "api.service"
    API_ENDPOINT = "api.endpoint"
    API_METHOD = "api.method"
    API_STATUS = "api.status"
    API_DURATION_MS = "api.duration_ms"

    # Cache
    CACHE_KEY = "cache.key"
    CACHE_HIT = "cache.hit"
    CACHE_TTL = "cache.ttl"
    CACHE_AGE_SECONDS = "cache.age_seconds"

    # Entities
    ENTITY_ID = "entity_id"
    ENTITY_TYPE = "entity_type"

    # Failed-lookup specific
    HTTP_STATUS = "http_status"
    FAILURE_CATEGORY = "failure_category"
    CACHED_AT = "cached_at"
