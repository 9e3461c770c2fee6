# src/remote/repository.py — v1
"""Base class for repositories backed by a remote JSON HTTP service.

Subclasses name themselves via ``repository_name`` and call cached_lookup()
for reads that should be protected by the failed-lookup cache:

    class OrganisationRepository(RemoteRepository):
        repository_name = "organisationrepository"

        def get_relationship(self, first, second):
            return self.cached_lookup(
                "relationship", f"v4/organisations/{first}/linked/{second}",
                first, second,
            )

        def create_relationship(self, first, second, payload):
            data = self.post_json(f"v4/organisations/{first}/linked/{second}", payload)
            self.invalidate_lookup("relationship", first, second)
            return data
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any
from urllib.parse import unquote

import httpx

from failcache.cache.base_cache_store import BaseCacheStore
from failcache.config.settings import Settings
from failcache.core.exceptions import RemoteServiceError
from failcache.logging.fields import LogFields
from failcache.remote.failed_lookups import FailedLookupCache
from failcache.remote.ttl_policy import FailureTtlPolicy

logger = logging.getLogger(__name__)

_TRAVERSAL_PATTERNS = (
    "../", "..\\", "%2e%2e%2f", "%2e%2e%5c", "..%2f", "..%5c",
    "%252e%252e%252f", "..%252f", "..%255c",
)
_INJECTION_RE = re.compile(
    r"[<>\"'`]|javascript:|data:|vbscript:|file:|about:", re.IGNORECASE
)
_ALLOWED_CHARS_RE = re.compile(r"^[a-zA-Z0-9\-_.~/:?@&=\[\]%!$()*+,;]+$")


def is_valid_url_path(url_path: str) -> bool:
    """Reject empty, traversal, injection-prone or double-encoded paths."""
    if not url_path.strip() or "\0" in url_path:
        return False

    lower_path = url_path.lower()
    if any(pattern in lower_path for pattern in _TRAVERSAL_PATTERNS):
        return False

    if _INJECTION_RE.search(url_path):
        return False

    decoded = unquote(url_path)
    if decoded != url_path and unquote(decoded) != decoded:
        return False

    if not _ALLOWED_CHARS_RE.match(url_path):
        return False

    if "//" in url_path and not re.match(r"^https?://", url_path):
        return False

    return True


class RemoteRepository:
    """JSON-over-HTTP repository with failed-lookup caching."""

    repository_name: str = ""

    def __init__(
        self,
        store: BaseCacheStore,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.name = self.repository_name or type(self).__name__.lower()
        self._owns_client = client is None
        self.client = client or httpx.Client(
            base_url=self.settings.remote_base_url,
            timeout=self.settings.remote_timeout_seconds,
        )
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.failures = FailedLookupCache(
            self.name,
            store,
            ttl_policy=FailureTtlPolicy.from_settings(self.settings),
            key_prefix=self.settings.failure_cache_key_prefix,
        )

    def allowed_get_request(self, url_path: str) -> bool:
        """Path is well-formed and fits within the configured URL length."""
        if not is_valid_url_path(url_path):
            return False
        base_length = len(str(self.client.base_url))
        return len(url_path) < self.settings.remote_max_url_length - base_length

    def get_json(self, url_path: str) -> Any:
        """GET a path and decode its JSON body.

        HTTP error statuses raise httpx.HTTPStatusError and network failures
        raise httpx.TransportError, both unwrapped so the failed-lookup cache
        can classify them.

        Raises:
            ValueError: If the path is not allowed.
            RemoteServiceError: If the body is not valid JSON.
        """
        self._require_allowed(url_path)

        started_at = time.perf_counter()
        response = self.client.get(url_path, headers=self.headers)
        elapsed_ms = (time.perf_counter() - started_at) * 1000.0
        logger.debug(
            "API GET %s -> %s",
            url_path,
            response.status_code,
            extra={"data": {
                LogFields.API_SERVICE: self.name,
                LogFields.API_ENDPOINT: url_path,
                LogFields.API_METHOD: "GET",
                LogFields.API_STATUS: response.status_code,
                LogFields.API_DURATION_MS: round(elapsed_ms, 2),
            }},
        )
        response.raise_for_status()
        return self._decode(response, url_path)

    def post_json(self, url_path: str, payload: Any) -> Any:
        """POST a JSON payload; error statuses become RemoteServiceError."""
        response = self.client.post(url_path, json=payload, headers=self.headers)
        if response.is_error:
            raise RemoteServiceError.from_remote_response(
                self.name, url_path, response.status_code, _error_details(response)
            )
        return self._decode(response, url_path)

    def cached_lookup(self, lookup_type: str, url_path: str, *identifiers: str) -> Any:
        """get_json() guarded by the failed-lookup cache."""
        # Path errors are raised outside the guard so they are never cached
        self._require_allowed(url_path)
        with self.failures.guard(lookup_type, *identifiers):
            return self.get_json(url_path)

    def invalidate_lookup(self, lookup_type: str, *identifiers: str) -> None:
        self.failures.clear_cached_failure(lookup_type, *identifiers)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> RemoteRepository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_allowed(self, url_path: str) -> None:
        if not self.allowed_get_request(url_path):
            raise ValueError(f"URL path not allowed: {url_path!r}")

    def _decode(self, response: httpx.Response, url_path: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteServiceError(
                "Remote service returned invalid response format",
                502,
                service=self.name,
                endpoint=url_path,
                remote_status_code=response.status_code,
            ) from exc


def _error_details(response: httpx.Response) -> list[str]:
    """Best-effort error strings from a JSON or JSON:API error body."""
    try:
        body = response.json()
    except ValueError:
        return [response.text] if response.text else []
    if not isinstance(body, dict):
        return []
    errors = body.get("errors")
    if isinstance(errors, list):
        return [str(e.get("detail", "")) for e in errors if isinstance(e, dict)]
    for field in ("errorMessage", "message", "error"):
        if isinstance(body.get(field), str):
            return [body[field]]
    return []
