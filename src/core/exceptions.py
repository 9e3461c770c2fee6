# src/core/exceptions.py — v1
"""Error types raised by failcache.

Remote lookups fail in two distinguishable ways:
- a fresh failure: the call was attempted and the remote side (or the
  network) failed; these surface as httpx errors or RemoteServiceError
- a cached failure: the call was NOT attempted because the same lookup
  failed recently; these surface as CachedLookupFailureError (HTTP 503)

Callers should catch CachedLookupFailureError separately from other errors.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from failcache.remote.failure_category import FailureCategory

if TYPE_CHECKING:
    from failcache.cache.models import CachedFailureRecord


class FailcacheError(Exception):
    """Base exception for all failcache errors."""


class HttpStatusError(FailcacheError):
    """Error that explicitly carries the HTTP status it should surface as.

    The status of such an error wins over any status found deeper in its
    cause chain when a failure is classified.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        *,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.extra: dict[str, Any] = dict(extra or {})

    @property
    def code(self) -> int:
        return self.status_code


class RemoteServiceError(HttpStatusError):
    """A call to a remote service failed.

    Defaults to 502 Bad Gateway; use 503 when the service is down.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        *,
        service: str | None = None,
        endpoint: str | None = None,
        remote_status_code: int | None = None,
        remote_errors: Sequence[str] = (),
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code, extra=extra)
        self.service = service
        self.endpoint = endpoint
        self.remote_status_code = remote_status_code
        self.remote_errors = list(remote_errors)

    @classmethod
    def from_remote_response(
        cls,
        service: str,
        endpoint: str,
        status_code: int,
        error_details: Sequence[str] = (),
    ) -> RemoteServiceError:
        """Build an error with structured context from a remote API response."""
        detail = "; ".join(d for d in error_details if d)
        if detail:
            message = f"Remote service error ({status_code}): {detail}"
        else:
            message = f"Remote service error ({status_code})"
        return cls(
            message,
            status_code,
            service=service,
            endpoint=endpoint,
            remote_status_code=status_code,
            remote_errors=error_details,
            extra={
                "api.service": service,
                "api.endpoint": endpoint,
                "api.status": status_code,
                "api.errors": list(error_details),
            },
        )


class CachedLookupFailureError(FailcacheError):
    """A lookup was short-circuited by a still-valid cached failure.

    Always reports 503 Service Unavailable at its own level: the remote call
    was deliberately not attempted. The original failure's status and
    category are preserved for inspection.

    Build instances with from_record() or from_cached_data().
    """

    HTTP_STATUS_CODE = 503

    def __init__(
        self,
        message: str,
        *,
        repository: str,
        lookup_type: str,
        identifiers: Sequence[str],
        original_exception_class: str,
        original_exception_message: str,
        cached_at: str,
        http_status: int | None,
        failure_category: FailureCategory,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.repository = repository
        self.lookup_type = lookup_type
        self.identifiers = list(identifiers)
        self.original_exception_class = original_exception_class
        self.original_exception_message = original_exception_message
        self.cached_at = cached_at
        self.http_status = http_status
        self.failure_category = failure_category

    @classmethod
    def from_record(cls, record: CachedFailureRecord) -> CachedLookupFailureError:
        """Build the error from a stored failure record."""
        identifier_str = ", ".join(record.identifiers)
        status_str = f" (HTTP {record.http_status})" if record.http_status is not None else ""
        message = (
            f"Cached lookup failure: {record.short_repository}::{record.lookup_type}"
            f"({identifier_str}) - original error{status_str}: "
            f"{record.exception_class}: {record.exception_message} "
            f"[cached at {record.cached_at}]"
        )
        return cls(
            message,
            repository=record.repository,
            lookup_type=record.lookup_type,
            identifiers=record.identifiers,
            original_exception_class=record.exception_class,
            original_exception_message=record.exception_message,
            cached_at=record.cached_at,
            http_status=record.http_status,
            failure_category=record.failure_category,
        )

    @classmethod
    def from_cached_data(cls, data: Mapping[str, Any]) -> CachedLookupFailureError:
        """Build the error from a raw cache payload, tolerating missing fields."""
        from failcache.cache.models import CachedFailureRecord

        return cls.from_record(CachedFailureRecord.from_cache(data))

    @property
    def status_code(self) -> int:
        return self.HTTP_STATUS_CODE

    def is_not_found(self) -> bool:
        return self.failure_category is FailureCategory.NOT_FOUND

    def is_server_error(self) -> bool:
        return self.failure_category is FailureCategory.SERVER_ERROR

    def is_auth_error(self) -> bool:
        return self.failure_category is FailureCategory.AUTH_ERROR

    def is_rate_limited(self) -> bool:
        return self.failure_category is FailureCategory.RATE_LIMITED

    def is_transient(self) -> bool:
        """Timeouts, connection errors, 5xx and rate limiting may self-resolve."""
        return self.failure_category.is_transient
