# src/remote/failed_lookups.py — v1
"""Negative-result cache for remote lookups.

Prevents cascading timeouts during remote service outages: when a lookup
fails, the failure is classified and cached with a category-specific TTL,
and subsequent identical lookups raise CachedLookupFailureError instead of
repeating the expensive call.

Usage:
    failures = FailedLookupCache("organisations", store)

    def get_relationship(first_org, second_org):
        failures.check_cached_failure("relationship", first_org, second_org)
        try:
            return client.get(f"v4/organisations/{first_org}/linked/{second_org}")
        except Exception as exc:
            failures.record_failure("relationship", exc, first_org, second_org)
            raise

or, equivalently:

    with failures.guard("relationship", first_org, second_org):
        return client.get(...)

After a write that makes a cached failure stale (e.g. creating the
relationship), call clear_cached_failure() with the same arguments.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable

from failcache.cache.base_cache_store import BaseCacheStore
from failcache.cache.models import CachedFailureRecord, short_name
from failcache.core.exceptions import CachedLookupFailureError
from failcache.logging.context import lookup_context
from failcache.logging.fields import LogFields
from failcache.remote.classifier import classify_failure, exception_code, extract_http_status
from failcache.remote.ttl_policy import FailureTtlPolicy

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "remote_failure"
_FEATURE = "remote_repository"


def _as_strings(identifiers: Sequence[object]) -> tuple[str, ...]:
    return tuple(str(i) for i in identifiers)


def _qualified_name(error: BaseException) -> str:
    cls = type(error)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


class FailedLookupCache:
    """Caches failed lookups of one repository in a shared key-value store."""

    def __init__(
        self,
        repository: str,
        store: BaseCacheStore,
        ttl_policy: FailureTtlPolicy | None = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.store = store
        self.ttl_policy = ttl_policy or FailureTtlPolicy()
        self.key_prefix = key_prefix
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def repository_short_name(self) -> str:
        """Lower-cased short repository name used in cache keys."""
        return short_name(self.repository).lower()

    def build_cache_key(self, lookup_type: str, identifiers: Sequence[object]) -> str:
        """Deterministic key: {prefix}:{repository}:{lookup_type}:{sha256 of identifiers}.

        Identifiers are hashed as a JSON list so ["a:b"] and ["a", "b"] differ.
        """
        encoded = json.dumps(list(_as_strings(identifiers)), ensure_ascii=False)
        digest = hashlib.sha256(encoded.encode("utf-8")).hexdigest()
        return f"{self.key_prefix}:{self.repository_short_name}:{lookup_type}:{digest}"

    def check_cached_failure(self, lookup_type: str, *identifiers: object) -> None:
        """Raise CachedLookupFailureError if this lookup failed recently.

        Returns normally when no cached failure exists.
        """
        identifiers = _as_strings(identifiers)
        cache_key = self.build_cache_key(lookup_type, identifiers)
        cached = self.store.get(cache_key)
        if cached is None:
            return

        record = CachedFailureRecord.from_cache(cached)
        age = record.age_seconds(self._clock())
        logger.info(
            "Remote lookup cache hit - returning cached failure",
            extra={"data": {
                LogFields.FEATURE: _FEATURE,
                LogFields.ACTION: "lookup_failure.cache_hit",
                LogFields.CACHE_HIT: True,
                LogFields.CACHE_KEY: cache_key,
                LogFields.CACHE_AGE_SECONDS: None if age is None else round(age, 3),
                LogFields.API_SERVICE: self.repository_short_name,
                LogFields.ENTITY_TYPE: lookup_type,
                LogFields.ENTITY_ID: ",".join(identifiers),
                LogFields.ERROR_TYPE: record.exception_class,
                LogFields.ERROR_MESSAGE: record.exception_message,
                LogFields.HTTP_STATUS: record.http_status,
                LogFields.FAILURE_CATEGORY: record.failure_category.value,
                LogFields.CACHED_AT: record.cached_at,
            }},
        )
        raise CachedLookupFailureError.from_record(record)

    def record_failure(
        self, lookup_type: str, error: BaseException, *identifiers: object
    ) -> CachedFailureRecord:
        """Classify a failure and cache it with the TTL of its category.

        Does not re-raise ``error``; errors from the store itself propagate.
        """
        identifiers = _as_strings(identifiers)
        cache_key = self.build_cache_key(lookup_type, identifiers)

        http_status = extract_http_status(error)
        category = classify_failure(error, http_status)
        ttl = self.ttl_policy.ttl_for_category(category)

        record = CachedFailureRecord(
            cached_at=self._clock().isoformat(),
            exception_class=_qualified_name(error),
            exception_message=str(error),
            exception_code=exception_code(error),
            http_status=http_status,
            failure_category=category,
            repository=self.repository,
            lookup_type=lookup_type,
            identifiers=list(identifiers),
        )
        self.store.put(cache_key, record.to_cache(), ttl)

        logger.warning(
            "Remote lookup failed - caching failure",
            extra={"data": {
                LogFields.FEATURE: _FEATURE,
                LogFields.ACTION: "lookup_failure.cached",
                LogFields.CACHE_KEY: cache_key,
                LogFields.CACHE_TTL: ttl,
                LogFields.API_SERVICE: self.repository_short_name,
                LogFields.ENTITY_TYPE: lookup_type,
                LogFields.ENTITY_ID: ",".join(identifiers),
                LogFields.ERROR_TYPE: record.exception_class,
                LogFields.ERROR_MESSAGE: record.exception_message,
                LogFields.ERROR_CODE: record.exception_code,
                LogFields.HTTP_STATUS: http_status,
                LogFields.FAILURE_CATEGORY: category.value,
            }},
        )
        return record

    def clear_cached_failure(self, lookup_type: str, *identifiers: object) -> None:
        """Drop a cached failure, e.g. after creating the missing resource.

        Clearing a lookup with nothing cached is a no-op.
        """
        identifiers = _as_strings(identifiers)
        cache_key = self.build_cache_key(lookup_type, identifiers)
        self.store.forget(cache_key)

        logger.debug(
            "Remote lookup cache cleared",
            extra={"data": {
                LogFields.FEATURE: _FEATURE,
                LogFields.ACTION: "lookup_failure.cache_cleared",
                LogFields.CACHE_KEY: cache_key,
                LogFields.API_SERVICE: self.repository_short_name,
                LogFields.ENTITY_TYPE: lookup_type,
                LogFields.ENTITY_ID: ",".join(identifiers),
            }},
        )

    def peek_cached_failure(
        self, lookup_type: str, *identifiers: object
    ) -> CachedFailureRecord | None:
        """Read the cached failure for debugging; no logging, never raises it."""
        identifiers = _as_strings(identifiers)
        cached = self.store.get(self.build_cache_key(lookup_type, identifiers))
        if cached is None:
            return None
        return CachedFailureRecord.from_cache(cached)

    @contextmanager
    def guard(self, lookup_type: str, *identifiers: object) -> Iterator[None]:
        """Check before the block, record any failure raised inside it.

        The original exception is always re-raised unchanged.
        """
        with lookup_context(self.repository, lookup_type):
            self.check_cached_failure(lookup_type, *identifiers)
            try:
                yield
            except CachedLookupFailureError:
                raise
            except Exception as exc:
                self.record_failure(lookup_type, exc, *identifiers)
                raise
