# src/remote/classifier.py — v1
"""Failure classification for remote lookups.

Turns an arbitrary caught exception into an HTTP status (when one can be
derived) and a FailureCategory. The exception's cause chain is walked so that
errors wrapped for context (``raise RemoteServiceError(...) from exc``) are
still classified by the transport error underneath.

Classification never raises: anything unrecognized degrades to UNKNOWN.
"""

from __future__ import annotations

import errno
from collections.abc import Iterator
from dataclasses import dataclass

import httpx

from failcache.core.exceptions import HttpStatusError
from failcache.remote.failure_category import FailureCategory

MAX_EXCEPTION_CHAIN_DEPTH = 5

# Errors raised before any HTTP response was received.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)
# Anything raised by the HTTP transport layer.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (httpx.HTTPError, *CONNECTION_ERRORS)

_TIMEOUT_MARKERS = ("timed out", "curl error 28")


@dataclass(frozen=True)
class FailureClassification:
    """HTTP status (if any) and category of one failure."""

    http_status: int | None
    category: FailureCategory


def iter_exception_chain(
    error: BaseException, max_depth: int = MAX_EXCEPTION_CHAIN_DEPTH
) -> Iterator[BaseException]:
    """Yield the error and its causes, outermost first, at most max_depth links.

    Follows ``__cause__``, then ``__context__`` unless it was suppressed with
    ``raise ... from None``. The depth bound also cuts cycles.
    """
    current: BaseException | None = error
    remaining = max_depth
    while current is not None and remaining > 0:
        yield current
        current = _previous(current)
        remaining -= 1


def _previous(error: BaseException) -> BaseException | None:
    if error.__cause__ is not None:
        return error.__cause__
    if error.__suppress_context__:
        return None
    return error.__context__


def _response_status(error: BaseException) -> int | None:
    if not isinstance(error, httpx.HTTPStatusError):
        return None
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def _explicit_status(error: BaseException) -> int | None:
    if isinstance(error, HttpStatusError):
        return error.status_code
    # Duck-typed contract, e.g. starlette.exceptions.HTTPException
    status = getattr(error, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def exception_code(error: BaseException) -> int:
    """Numeric code carried by an exception: ``code``, else ``errno``, else 0."""
    for attr in ("code", "errno"):
        try:
            value = getattr(error, attr, None)
        except Exception:
            value = None
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 0


def extract_http_status(error: BaseException) -> int | None:
    """Extract the HTTP status a failure should be attributed to.

    Links are examined outermost first; per link:
    - an httpx.HTTPStatusError returns its response status,
    - a connection-level error means no response was ever received, so the
      result is None and the walk stops (no code fallback),
    - an error carrying an explicit status returns that status, so a wrapper
      wins over a status found deeper in the chain.

    If no link decides, the top-level error's numeric code is used when it
    lies within 400..599.
    """
    for link in iter_exception_chain(error):
        status = _response_status(link)
        if status is not None:
            return status

        if isinstance(link, CONNECTION_ERRORS):
            return None

        status = _explicit_status(link)
        if status is not None:
            return status

    code = exception_code(error)
    if 400 <= code <= 599:
        return code
    return None


def find_transport_error(error: BaseException) -> BaseException | None:
    """First transport-level error in the (bounded) cause chain."""
    for link in iter_exception_chain(error):
        if isinstance(link, TRANSPORT_ERRORS):
            return link
    return None


def is_timeout(error: BaseException) -> bool:
    """True if a connection-level error represents a timeout."""
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return True
    if getattr(error, "errno", None) == errno.ETIMEDOUT:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


def classify_failure(error: BaseException, http_status: int | None) -> FailureCategory:
    """Classify a failure from its HTTP status or, lacking one, its transport error."""
    if http_status is None:
        transport_error = find_transport_error(error)
        if isinstance(transport_error, CONNECTION_ERRORS):
            if is_timeout(transport_error):
                return FailureCategory.TIMEOUT
            return FailureCategory.CONNECTION_ERROR
        return FailureCategory.UNKNOWN

    if http_status == 404:
        return FailureCategory.NOT_FOUND
    if http_status in (401, 403):
        return FailureCategory.AUTH_ERROR
    if http_status == 429:
        return FailureCategory.RATE_LIMITED
    if 500 <= http_status < 600:
        return FailureCategory.SERVER_ERROR
    if 400 <= http_status < 500:
        return FailureCategory.CLIENT_ERROR
    return FailureCategory.UNKNOWN


def classify(error: BaseException) -> FailureClassification:
    """Extract the HTTP status and classify in one step."""
    http_status = extract_http_status(error)
    return FailureClassification(http_status, classify_failure(error, http_status))
