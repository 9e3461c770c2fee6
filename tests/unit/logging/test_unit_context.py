# tests/unit/logging/test_context.py — v2
"""Tests for logging/context.py: contextual logging variables."""

from __future__ import annotations

import pytest

from failcache.logging.context import (
    clear_context,
    get_context,
    lookup_context,
    set_request_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.repository is None
        assert ctx.lookup_type is None
        assert ctx.as_dict() == {}

    def test_set_request_context(self):
        set_request_context("req-1", "organisations")
        ctx = get_context()
        assert ctx.request_id == "req-1"
        assert ctx.service == "organisations"

    def test_lookup_context(self):
        with lookup_context("OrganisationRepository", "relationship") as ctx:
            assert ctx.repository == "OrganisationRepository"
            assert get_context().lookup_type == "relationship"
        assert get_context().repository is None

    def test_lookup_context_nested(self):
        with lookup_context("Outer", "a"):
            with lookup_context("Inner", "b"):
                assert get_context().repository == "Inner"
            assert get_context().repository == "Outer"
            assert get_context().lookup_type == "a"

    def test_lookup_context_restored_on_error(self):
        with pytest.raises(RuntimeError):
            with lookup_context("Repo", "x"):
                raise RuntimeError("boom")
        assert get_context().repository is None

    def test_as_dict_excludes_none(self):
        set_request_context("req-1")
        assert get_context().as_dict() == {"request_id": "req-1"}

    def test_clear(self):
        set_request_context("req-1", "svc")
        clear_context()
        assert get_context().request_id is None
        assert get_context().service is None
