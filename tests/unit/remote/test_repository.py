# tests/unit/remote/test_repository.py — v1
"""Tests for remote/repository.py (HTTP via httpx.MockTransport)."""

from __future__ import annotations

import httpx
import pytest

from failcache.config.settings import Settings
from failcache.core.exceptions import CachedLookupFailureError, RemoteServiceError
from failcache.remote.failure_category import FailureCategory
from failcache.remote.repository import RemoteRepository, is_valid_url_path

BASE_URL = "http://remote.test"


class OrganisationRepository(RemoteRepository):
    repository_name = "organisationrepository"

    def get_organisation(self, org_id):
        return self.cached_lookup("organisation", f"v4/organisations/{org_id}", org_id)


class RecordingHandler:
    """MockTransport handler returning a canned response and counting calls."""

    def __init__(self, response=None, error=None):
        self.response = response or httpx.Response(200, json={"ok": True})
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        # Fresh copy per call: a Response is bound to a single request
        return httpx.Response(
            self.response.status_code,
            headers=self.response.headers,
            content=self.response.content,
        )


def _repo(store, handler, cls=OrganisationRepository, **settings):
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return cls(store, settings=Settings(_env_file=None, **settings), client=client)


class TestIsValidUrlPath:
    @pytest.mark.parametrize("path", [
        "v4/organisations/123",
        "v4/organisations/123/linked/456",
        "search?q=acme&page=2",
        "users/john%40example.com",
        "http://remote.test/v4/organisations",
    ])
    def test_valid(self, path):
        assert is_valid_url_path(path)

    @pytest.mark.parametrize("path", [
        "",
        "   ",
        "v4/\0",
        "../etc/passwd",
        "v4/%2e%2e%2fsecret",
        "v4/<script>",
        "javascript:alert(1)",
        "v4/a%2541",
        "v4//organisations",
        "v4/organisations/{id}",
    ])
    def test_invalid(self, path):
        assert not is_valid_url_path(path)


class TestRemoteRepository:
    def test_name_from_attribute(self, store):
        repo = _repo(store, RecordingHandler())
        assert repo.name == "organisationrepository"
        assert repo.failures.repository_short_name == "organisationrepository"

    def test_name_falls_back_to_class(self, store):
        class UserRepository(RemoteRepository):
            pass

        repo = _repo(store, RecordingHandler(), cls=UserRepository)
        assert repo.name == "userrepository"

    def test_ttl_policy_from_settings(self, store):
        repo = _repo(
            store, RecordingHandler(),
            failure_cache_ttl=60,
            failure_cache_ttl_by_category={"not_found": 600},
        )
        assert repo.failures.ttl_policy.ttl_for_category(FailureCategory.NOT_FOUND) == 600
        assert repo.failures.ttl_policy.ttl_for_category(FailureCategory.TIMEOUT) == 60

    def test_allowed_get_request_length(self, store):
        repo = _repo(store, RecordingHandler(), remote_max_url_length=100)
        assert repo.allowed_get_request("v4/organisations/1")
        assert not repo.allowed_get_request("v4/" + "a" * 100)

    def test_get_json(self, store):
        handler = RecordingHandler(httpx.Response(200, json={"id": "1"}))
        repo = _repo(store, handler)
        assert repo.get_json("v4/organisations/1") == {"id": "1"}
        assert handler.requests[0].url == "http://remote.test/v4/organisations/1"
        assert handler.requests[0].headers["Accept"] == "application/json"

    def test_get_json_empty_body(self, store):
        repo = _repo(store, RecordingHandler(httpx.Response(204)))
        assert repo.get_json("v4/organisations/1") is None

    def test_get_json_error_status(self, store):
        repo = _repo(store, RecordingHandler(httpx.Response(404)))
        with pytest.raises(httpx.HTTPStatusError):
            repo.get_json("v4/organisations/1")

    def test_get_json_invalid_body(self, store):
        repo = _repo(store, RecordingHandler(httpx.Response(200, text="<html>")))
        with pytest.raises(RemoteServiceError) as exc_info:
            repo.get_json("v4/organisations/1")
        assert exc_info.value.status_code == 502
        assert exc_info.value.endpoint == "v4/organisations/1"

    def test_get_json_rejected_path(self, store):
        handler = RecordingHandler()
        repo = _repo(store, handler)
        with pytest.raises(ValueError, match="not allowed"):
            repo.get_json("../secret")
        assert handler.requests == []

    def test_extra_headers(self, store):
        handler = RecordingHandler()
        client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        repo = OrganisationRepository(
            store, settings=Settings(_env_file=None), client=client,
            headers={"Authorization": "Bearer t"},
        )
        repo.get_json("v4/organisations/1")
        assert handler.requests[0].headers["Authorization"] == "Bearer t"


class TestPostJson:
    def test_success(self, store):
        handler = RecordingHandler(httpx.Response(201, json={"created": True}))
        repo = _repo(store, handler)
        assert repo.post_json("v4/organisations", {"name": "Acme"}) == {"created": True}
        assert handler.requests[0].method == "POST"

    def test_jsonapi_errors(self, store):
        body = {"errors": [{"detail": "Name is required"}, {"detail": "Bad type"}]}
        repo = _repo(store, RecordingHandler(httpx.Response(422, json=body)))
        with pytest.raises(RemoteServiceError) as exc_info:
            repo.post_json("v4/organisations", {})
        err = exc_info.value
        assert err.status_code == 422
        assert err.remote_errors == ["Name is required", "Bad type"]
        assert err.service == "organisationrepository"
        assert "Name is required; Bad type" in str(err)

    def test_message_field(self, store):
        body = {"message": "Conflict"}
        repo = _repo(store, RecordingHandler(httpx.Response(409, json=body)))
        with pytest.raises(RemoteServiceError) as exc_info:
            repo.post_json("v4/organisations", {})
        assert exc_info.value.remote_errors == ["Conflict"]

    def test_plain_text_error(self, store):
        repo = _repo(store, RecordingHandler(httpx.Response(500, text="oops")))
        with pytest.raises(RemoteServiceError) as exc_info:
            repo.post_json("v4/organisations", {})
        assert exc_info.value.remote_errors == ["oops"]


class TestCachedLookup:
    def test_success_passes_through(self, store):
        handler = RecordingHandler(httpx.Response(200, json={"id": "1"}))
        repo = _repo(store, handler)
        assert repo.get_organisation("1") == {"id": "1"}
        assert repo.get_organisation("1") == {"id": "1"}
        assert len(handler.requests) == 2

    def test_not_found_cached(self, store):
        handler = RecordingHandler(httpx.Response(404, json={"message": "missing"}))
        repo = _repo(store, handler)

        with pytest.raises(httpx.HTTPStatusError):
            repo.get_organisation("1")
        with pytest.raises(CachedLookupFailureError) as exc_info:
            repo.get_organisation("1")

        assert len(handler.requests) == 1
        assert exc_info.value.is_not_found()
        assert exc_info.value.status_code == 503

    def test_timeout_cached(self, store, http_request):
        handler = RecordingHandler(error=httpx.ConnectTimeout("timed out", request=http_request))
        repo = _repo(store, handler)

        with pytest.raises(httpx.ConnectTimeout):
            repo.get_organisation("1")
        with pytest.raises(CachedLookupFailureError) as exc_info:
            repo.get_organisation("1")

        assert len(handler.requests) == 1
        assert exc_info.value.failure_category is FailureCategory.TIMEOUT
        assert exc_info.value.is_transient()

    def test_invalid_body_cached_as_server_error(self, store):
        repo = _repo(store, RecordingHandler(httpx.Response(200, text="<html>")))
        with pytest.raises(RemoteServiceError):
            repo.get_organisation("1")
        record = repo.failures.peek_cached_failure("organisation", "1")
        assert record.http_status == 502
        assert record.failure_category is FailureCategory.SERVER_ERROR

    def test_rejected_path_not_cached(self, store):
        repo = _repo(store, RecordingHandler())
        with pytest.raises(ValueError):
            repo.cached_lookup("organisation", "../x", "x")
        assert repo.failures.peek_cached_failure("organisation", "x") is None

    def test_invalidate_lookup(self, store):
        handler = RecordingHandler(httpx.Response(404))
        repo = _repo(store, handler)
        with pytest.raises(httpx.HTTPStatusError):
            repo.get_organisation("1")

        handler.response = httpx.Response(200, json={"id": "1"})
        repo.invalidate_lookup("organisation", "1")
        assert repo.get_organisation("1") == {"id": "1"}


class TestClientLifecycle:
    def test_owned_client_closed(self, store):
        repo = OrganisationRepository(
            store, settings=Settings(_env_file=None, remote_base_url=BASE_URL)
        )
        with repo:
            assert str(repo.client.base_url).startswith(BASE_URL)
        assert repo.client.is_closed

    def test_borrowed_client_left_open(self, store):
        repo = _repo(store, RecordingHandler())
        repo.close()
        assert not repo.client.is_closed
