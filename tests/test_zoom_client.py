"""Tests for the Zoom OAuth token cache and REST client."""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from app.core.exceptions import ProviderAuthError, ProviderUnavailableError
from app.services.zoom import AccessTokenCache, CreateStatus, ZoomClient
from app.services.zoom.client import parse_start_time

pytestmark = pytest.mark.unit

OAUTH_URL = "https://zoom.test/oauth/token"
API_URL = "https://api.zoom.test"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _token_cache(handler, clock=None, **overrides) -> AccessTokenCache:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    values = {"account_id": "acct", "client_id": "cid", "client_secret": "secret", "oauth_url": OAUTH_URL}
    values.update(overrides)
    return AccessTokenCache(http_client, clock=clock or FakeClock(), **values)


def _zoom_client(api_handler) -> ZoomClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(OAUTH_URL):
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
        assert request.headers["Authorization"] == "Bearer tok"
        return api_handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    tokens = AccessTokenCache(
        http_client, account_id="acct", client_id="cid", client_secret="secret", oauth_url=OAUTH_URL
    )
    return ZoomClient(http_client, token_cache=tokens, base_url=API_URL)


class TestAccessTokenCache:
    async def test_exchanges_account_credentials(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})

        cache = _token_cache(handler)
        assert await cache.get_token() == "tok"

        assert seen["method"] == "POST"
        assert seen["params"] == {"grant_type": "account_credentials", "account_id": "acct"}
        assert seen["auth"] == "Basic " + base64.b64encode(b"cid:secret").decode()

    async def test_reuses_token_until_shortly_before_expiry(self):
        calls = []
        clock = FakeClock()

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(200, json={"access_token": f"tok{len(calls)}", "expires_in": 3600})

        cache = _token_cache(handler, clock=clock)
        assert await cache.get_token() == "tok1"

        clock.now += 3500
        assert await cache.get_token() == "tok1"

        clock.now += 60
        assert await cache.get_token() == "tok2"
        assert len(calls) == 2

    async def test_invalidate_forces_exchange(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})

        cache = _token_cache(handler)
        await cache.get_token()
        cache.invalidate()
        await cache.get_token()
        assert len(calls) == 2

    async def test_missing_credentials(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        cache = _token_cache(handler)
        monkeypatch.setattr(cache, "client_secret", None)

        with pytest.raises(ProviderAuthError) as exc_info:
            await cache.get_token()
        assert exc_info.value.message == "Missing Zoom env vars"

    async def test_refused_credentials(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"reason": "Invalid client_id or client_secret", "error": "invalid_client"})

        cache = _token_cache(handler)
        with pytest.raises(ProviderAuthError) as exc_info:
            await cache.get_token()
        assert exc_info.value.message == "Zoom token error: Invalid client_id or client_secret"
        assert exc_info.value.status_code == 502

    async def test_transport_error_keeps_cause(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        cache = _token_cache(handler)
        with pytest.raises(ProviderAuthError) as exc_info:
            await cache.get_token()
        assert exc_info.value.message.startswith("Zoom token request failed")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestZoomClient:
    async def test_list_occurrences_parses_and_skips_malformed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v2/webinars/900"
            return httpx.Response(
                200,
                json={
                    "id": 900,
                    "occurrences": [
                        {"occurrence_id": "1736190000000", "start_time": "2025-01-06T19:00:00Z"},
                        {"occurrence_id": "broken", "start_time": "not a date"},
                        {"start_time": "2025-01-07T19:00:00Z"},
                        "junk",
                        None,
                    ],
                },
            )

        occurrences = await _zoom_client(handler).list_occurrences("900")

        assert len(occurrences) == 1
        assert occurrences[0].occurrence_id == "1736190000000"
        assert occurrences[0].starts_at.isoformat() == "2025-01-06T19:00:00+00:00"

    async def test_list_occurrences_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"code": 3001, "message": "Webinar does not exist"})

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await _zoom_client(handler).list_occurrences("900")
        assert exc_info.value.upstream_status == 404
        assert "Webinar does not exist" in exc_info.value.message

    @pytest.mark.parametrize("method", ["list_occurrences", "list_registrants"])
    async def test_transport_error_keeps_cause(self, method):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await getattr(_zoom_client(handler), method)("900")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_list_registrants_page(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(
                200,
                json={
                    "registrants": [{"id": "r1", "email": "ann@example.org", "join_url": "https://zoom.test/j/1"}],
                    "next_page_token": "abc",
                },
            )

        registrants, token = await _zoom_client(handler).list_registrants("900", occurrence_id="occ1", page_size=300)

        assert seen == {"status": "approved", "page_size": "300", "occurrence_id": "occ1"}
        assert registrants[0].registrant_id == "r1"
        assert registrants[0].join_url == "https://zoom.test/j/1"
        assert token == "abc"

    async def test_create_registrant_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                201, json={"id": 900, "registrant_id": "r9", "join_url": "https://zoom.test/j/9"}
            )

        attempt = await _zoom_client(handler).create_registrant(
            "900", "occ1", first_name="Ann", last_name="Lee", email="ann@example.org", phone="+85291234567"
        )

        assert attempt.status == CreateStatus.CREATED
        assert attempt.registrant.join_url == "https://zoom.test/j/9"
        assert attempt.registrant.registrant_id == "r9"
        assert seen["params"] == {"occurrence_ids": "occ1"}
        assert seen["body"] == {
            "email": "ann@example.org",
            "first_name": "Ann",
            "last_name": "Lee",
            "occurrence_ids": "occ1",
            "phone": "+85291234567",
        }

    @pytest.mark.parametrize(
        "code, expected",
        [
            (400, CreateStatus.CONFLICT),
            (409, CreateStatus.CONFLICT),
            (429, CreateStatus.RATE_LIMITED),
            (404, CreateStatus.FAILED),
            (500, CreateStatus.FAILED),
        ],
    )
    async def test_create_registrant_status_mapping(self, code, expected):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(code, json={"code": 1, "message": "nope"})

        attempt = await _zoom_client(handler).create_registrant(
            "900", "occ1", first_name="Ann", last_name="Lee", email="ann@example.org"
        )

        assert attempt.status == expected
        assert attempt.status_code == code
        assert attempt.message == "nope"

    async def test_create_registrant_transport_error_is_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        attempt = await _zoom_client(handler).create_registrant(
            "900", "occ1", first_name="Ann", last_name="Lee", email="ann@example.org"
        )

        assert attempt.status == CreateStatus.FAILED
        assert attempt.status_code is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-01-06T19:00:00Z", "2025-01-06T19:00:00+00:00"),
        ("2025-01-07T03:00:00+08:00", "2025-01-06T19:00:00+00:00"),
        ("2025-01-06T19:00:00", "2025-01-06T19:00:00+00:00"),
    ],
)
def test_parse_start_time(value, expected):
    assert parse_start_time(value).isoformat() == expected


@pytest.mark.parametrize("value", [None, "", "tomorrow", 12345])
def test_parse_start_time_rejects_garbage(value):
    assert parse_start_time(value) is None
