# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides an in-memory cache store with a controllable clock, a ready-made
FailedLookupCache and httpx error factories. No external services: all HTTP
traffic goes through httpx.MockTransport.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx
import pytest

from failcache.cache.memory_store import MemoryCacheStore
from failcache.logging.context import clear_context
from failcache.remote.failed_lookups import FailedLookupCache
from failcache.remote.ttl_policy import FailureTtlPolicy


class FakeClock:
    """Monotonic seconds + wall-clock datetime, advanced manually."""

    def __init__(self) -> None:
        self.seconds = 1000.0
        self.start = datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)

    def monotonic(self) -> float:
        return self.seconds

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.seconds - 1000.0)

    def advance(self, seconds: float) -> None:
        self.seconds += seconds


# === FIXTURES: Clock and store ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryCacheStore:
    """Empty in-memory store driven by the fake clock."""
    return MemoryCacheStore(clock=clock.monotonic)


@pytest.fixture
def failed_lookups(store: MemoryCacheStore, clock: FakeClock) -> FailedLookupCache:
    """FailedLookupCache for 'TestRepository' with a 120s default TTL."""
    return FailedLookupCache(
        "tests.repositories.TestRepository",
        store,
        ttl_policy=FailureTtlPolicy(default_ttl=120),
        clock=clock.now,
    )


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


# === FIXTURES: httpx errors ===


@pytest.fixture
def http_request() -> httpx.Request:
    return httpx.Request("GET", "http://example.com/v4/organisations")


@pytest.fixture
def status_error(http_request: httpx.Request) -> Callable[..., httpx.HTTPStatusError]:
    """Factory: status_error(404, "Not found") -> httpx.HTTPStatusError."""

    def _make(status: int, message: str = "HTTP error") -> httpx.HTTPStatusError:
        response = httpx.Response(status, request=http_request)
        return httpx.HTTPStatusError(message, request=http_request, response=response)

    return _make


@pytest.fixture
def connect_error(http_request: httpx.Request) -> Callable[..., httpx.TransportError]:
    """Factory: connect_error("Connection refused") -> httpx.ConnectError."""

    def _make(
        message: str = "Connection refused",
        cls: type[httpx.TransportError] = httpx.ConnectError,
    ) -> httpx.TransportError:
        return cls(message, request=http_request)

    return _make


@pytest.fixture
def wrap() -> Callable[[BaseException, BaseException], BaseException]:
    """Factory: wrap(outer, cause) chains cause as outer.__cause__."""

    def _wrap(outer: BaseException, cause: BaseException) -> BaseException:
        outer.__cause__ = cause
        return outer

    return _wrap
