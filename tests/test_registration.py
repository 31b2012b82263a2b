"""Tests for create-or-reuse registration against a Zoom double."""

from __future__ import annotations

import pytest

from _helpers import ZoomDouble, identity
from app.core.exceptions import ProviderAuthError, ProviderRateLimitedError, ProviderUnavailableError
from app.services.zoom import (
    CreateAttempt,
    CreateStatus,
    Registrant,
    RegistrationOutcome,
    find_registrant_by_email,
    register_or_reuse,
)

pytestmark = pytest.mark.unit


class RacingZoom(ZoomDouble):
    """A concurrent request wins the create; ours gets the conflict status."""

    def __init__(self, status: CreateStatus, status_code: int, message: str = "") -> None:
        super().__init__()
        self.status = status
        self.status_code = status_code
        self.message = message

    async def create_registrant(self, webinar_id, occurrence_id, first_name, last_name, email, phone=None):
        self.create_calls.append({"email": email})
        self.registrants.append(Registrant(email=email.upper(), join_url="https://zoom.test/w/900?tk=winner"))
        return CreateAttempt(status=self.status, status_code=self.status_code, message=self.message)


class BrokenListZoom(ZoomDouble):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    async def list_registrants(self, *args, **kwargs):
        self.list_calls.append(kwargs)
        raise self.error


class TestRegisterOrReuse:
    async def test_second_request_reuses_first_registration(self, zoom):
        first = await register_or_reuse(zoom, "900", "occ1", identity())
        second = await register_or_reuse(zoom, "900", "occ1", identity())

        assert first.outcome == RegistrationOutcome.CREATED
        assert second.outcome == RegistrationOutcome.REUSED
        assert first.join_url == second.join_url
        assert len(zoom.create_calls) == 1

    async def test_email_match_is_case_insensitive(self, zoom):
        zoom.registrants = [Registrant(email="ANN@Example.org", join_url="https://zoom.test/existing")]

        result = await register_or_reuse(zoom, "900", "occ1", identity("ann@example.org"))

        assert result.outcome == RegistrationOutcome.REUSED
        assert result.unwrap() == "https://zoom.test/existing"
        assert zoom.create_calls == []

    async def test_create_sends_identity_and_occurrence(self, zoom):
        await register_or_reuse(zoom, "900", "occ1", identity(first_name="Bob", last_name="\u200b"))

        call = zoom.create_calls[0]
        assert call["occurrence_id"] == "occ1"
        assert (call["first_name"], call["last_name"]) == ("Bob", "\u200b")
        assert call["email"] == "ann@example.org"
        assert call["phone"] == "+85291234567"
        assert zoom.list_calls[0]["occurrence_id"] == "occ1"
        assert zoom.list_calls[0]["status"] == "approved"

    async def test_conflict_recovers_with_one_extra_lookup(self):
        zoom = RacingZoom(CreateStatus.CONFLICT, 409)

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.outcome == RegistrationOutcome.REUSED
        assert result.recovered is True
        assert result.join_url == "https://zoom.test/w/900?tk=winner"
        assert len(zoom.create_calls) == 1
        assert len(zoom.list_calls) == 2

    async def test_rate_limit_recovers_when_registrant_exists(self):
        zoom = RacingZoom(CreateStatus.RATE_LIMITED, 429)

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.outcome == RegistrationOutcome.REUSED
        assert result.unwrap() == "https://zoom.test/w/900?tk=winner"

    async def test_unrecovered_conflict_fails(self, zoom):
        zoom.create_results = [CreateAttempt(status=CreateStatus.CONFLICT, status_code=409, message="exists")]

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.outcome == RegistrationOutcome.FAILED
        assert len(zoom.list_calls) == 2
        with pytest.raises(ProviderUnavailableError) as exc_info:
            result.unwrap()
        assert exc_info.value.upstream_status == 409
        assert exc_info.value.status_code == 502

    async def test_persistent_rate_limit(self, zoom):
        zoom.create_results = [CreateAttempt(status=CreateStatus.RATE_LIMITED, status_code=429)]

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.outcome == RegistrationOutcome.RATE_LIMITED
        assert result.message == (
            "Zoom limit: Per-registrant daily limit reached. Please try again later (after GMT 00:00)."
        )
        with pytest.raises(ProviderRateLimitedError) as exc_info:
            result.unwrap()
        assert exc_info.value.status_code == 429

    async def test_rate_limit_message_carries_provider_reason(self, zoom):
        zoom.create_results = [
            CreateAttempt(status=CreateStatus.RATE_LIMITED, status_code=429, message="You have reached the limit")
        ]

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.message.startswith("Zoom limit: You have reached the limit. ")

    async def test_other_errors_fail_without_extra_lookup(self, zoom):
        zoom.create_results = [CreateAttempt(status=CreateStatus.FAILED, status_code=500, message="oops")]

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.outcome == RegistrationOutcome.FAILED
        assert result.message == "Zoom register failed: 500 oops"
        assert len(zoom.list_calls) == 1

    async def test_created_without_join_url_fails(self, zoom):
        zoom.create_results = [
            CreateAttempt(status=CreateStatus.CREATED, registrant=Registrant(email="ann@example.org"), status_code=201)
        ]

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.outcome == RegistrationOutcome.FAILED
        with pytest.raises(ProviderUnavailableError):
            result.unwrap()

    async def test_lookup_failure_still_creates(self):
        zoom = BrokenListZoom(ProviderUnavailableError("Zoom registrant list failed: 500", upstream_status=500))

        result = await register_or_reuse(zoom, "900", "occ1", identity())

        assert result.outcome == RegistrationOutcome.CREATED
        assert len(zoom.create_calls) == 1

    async def test_auth_failure_propagates(self):
        zoom = BrokenListZoom(ProviderAuthError("Missing Zoom env vars"))

        with pytest.raises(ProviderAuthError):
            await register_or_reuse(zoom, "900", "occ1", identity())
        assert zoom.create_calls == []


class TestFindRegistrantByEmail:
    @staticmethod
    def _zoom_with_pages() -> ZoomDouble:
        zoom = ZoomDouble()
        zoom.page_size = 2
        zoom.registrants = [
            Registrant(email=f"user{i}@example.org", join_url=f"https://zoom.test/{i}") for i in range(5)
        ]
        return zoom

    async def test_follows_next_page_token(self):
        zoom = self._zoom_with_pages()

        found = await find_registrant_by_email(zoom, "900", "occ1", "user4@example.org")

        assert found.join_url == "https://zoom.test/4"
        assert [c["token"] for c in zoom.list_calls] == [None, "2", "4"]

    async def test_page_cap(self):
        zoom = self._zoom_with_pages()

        assert await find_registrant_by_email(zoom, "900", "occ1", "user4@example.org", max_pages=2) is None
        assert len(zoom.list_calls) == 2

    async def test_missing_email(self):
        zoom = self._zoom_with_pages()

        assert await find_registrant_by_email(zoom, "900", "occ1", "nobody@example.org") is None
        assert len(zoom.list_calls) == 3
