# src/logging/context.py — v2
"""Contextual logging support: attach request_id, service, repository and
lookup_type to log records.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per request / per lookup.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_service: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "service", default=None
)
_repository: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "repository", default=None
)
_lookup_type: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "lookup_type", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    service: str | None = None
    repository: str | None = None
    lookup_type: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        service=_service.get(),
        repository=_repository.get(),
        lookup_type=_lookup_type.get(),
    )


def set_request_context(request_id: str, service: str | None = None) -> None:
    """Set request-level context (called once per inbound request or job)."""
    _request_id.set(request_id)
    _service.set(service)


@contextmanager
def lookup_context(repository: str, lookup_type: str) -> Iterator[LogContext]:
    """Tag every record logged inside the block with the current lookup.

    The previous values are restored on exit, so lookups can nest.
    """
    repo_token = _repository.set(repository)
    type_token = _lookup_type.set(lookup_type)
    try:
        yield get_context()
    finally:
        _lookup_type.reset(type_token)
        _repository.reset(repo_token)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _service.set(None)
    _repository.set(None)
    _lookup_type.set(None)
