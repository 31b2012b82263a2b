"""
Registration Idempotency
Create-or-reuse of a Zoom registrant for (webinar, occurrence, email).

    LOOKUP ──found──> REUSED
       │
    CREATE ──ok──> CREATED
       │
    409/400/429 ──> LOOKUP again ──found──> REUSED (recovered)
                         │
                  429: RATE_LIMITED, otherwise FAILED

Zoom enforces uniqueness per email; looking up before and after a
conflicting create is what keeps double-submits from failing.
No lock is taken.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.core.exceptions import (
    ProviderAuthError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
)
from app.services.identity import ResolvedIdentity, mask_email
from app.services.zoom.client import CreateStatus, Registrant, ZoomClient

logger = logging.getLogger(__name__)

REGISTRANT_PAGE_SIZE = 300
REGISTRANT_MAX_PAGES = 10

DEFAULT_LIMIT_REASON = "Per-registrant daily limit reached"


class RegistrationOutcome(str, Enum):
    CREATED = "created"
    REUSED = "reused"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


@dataclass(frozen=True)
class RegistrationResult:
    outcome: RegistrationOutcome
    registrant: Optional[Registrant] = None
    message: str = ""
    status_code: Optional[int] = None
    recovered: bool = False  # REUSED after a conflicting/rate-limited create

    @property
    def join_url(self) -> Optional[str]:
        return self.registrant.join_url if self.registrant else None

    def unwrap(self) -> str:
        """
        The join URL.

        Raises:
            ProviderRateLimitedError: RATE_LIMITED
            ProviderUnavailableError: FAILED
        """
        if self.outcome in (RegistrationOutcome.CREATED, RegistrationOutcome.REUSED) and self.join_url:
            return self.join_url
        if self.outcome == RegistrationOutcome.RATE_LIMITED:
            raise ProviderRateLimitedError(self.message)
        raise ProviderUnavailableError(self.message or "Zoom did not return join_url", upstream_status=self.status_code)


async def find_registrant_by_email(
    client: ZoomClient,
    webinar_id: str,
    occurrence_id: Optional[str],
    email: str,
    max_pages: int = REGISTRANT_MAX_PAGES
) -> Optional[Registrant]:
    """
    Approved registrant with this email (case-insensitive), across pages.

    A failed listing counts as "not found"; a failed token exchange does not.
    """
    target = email.lower()
    page_token = None

    for _ in range(max_pages):
        try:
            registrants, page_token = await client.list_registrants(
                webinar_id,
                occurrence_id=occurrence_id,
                status="approved",
                page_size=REGISTRANT_PAGE_SIZE,
                next_page_token=page_token
            )
        except ProviderAuthError:
            raise
        except ProviderUnavailableError as e:
            logger.warning(f"Registrant lookup failed for webinar {webinar_id}: {e}")
            return None

        for registrant in registrants:
            if registrant.email.lower() == target:
                return registrant

        if not page_token:
            break

    return None


async def register_or_reuse(
    client: ZoomClient,
    webinar_id: str,
    occurrence_id: str,
    identity: ResolvedIdentity
) -> RegistrationResult:
    """Return the caller's registrant for this occurrence, creating it only if absent."""
    who = mask_email(identity.email)

    existing = await find_registrant_by_email(client, webinar_id, occurrence_id, identity.email)
    if existing and existing.join_url:
        logger.info(f"Reusing registrant {who} on {webinar_id}/{occurrence_id}")
        return RegistrationResult(outcome=RegistrationOutcome.REUSED, registrant=existing)

    attempt = await client.create_registrant(
        webinar_id,
        occurrence_id,
        first_name=identity.first_name,
        last_name=identity.last_name,
        email=identity.email,
        phone=identity.phone or None
    )

    if attempt.status == CreateStatus.CREATED:
        if attempt.registrant and attempt.registrant.join_url:
            logger.info(f"Created registrant {who} on {webinar_id}/{occurrence_id}")
            return RegistrationResult(outcome=RegistrationOutcome.CREATED, registrant=attempt.registrant, status_code=attempt.status_code)
        return RegistrationResult(
            outcome=RegistrationOutcome.FAILED,
            message="Zoom did not return join_url",
            status_code=attempt.status_code
        )

    if attempt.status in (CreateStatus.CONFLICT, CreateStatus.RATE_LIMITED):
        # A duplicate or retried request may have created it meanwhile
        again = await find_registrant_by_email(client, webinar_id, occurrence_id, identity.email)
        if again and again.join_url:
            logger.info(f"Recovered registrant {who} after {attempt.status_code}")
            return RegistrationResult(
                outcome=RegistrationOutcome.REUSED,
                registrant=again,
                status_code=attempt.status_code,
                recovered=True
            )

        if attempt.status == CreateStatus.RATE_LIMITED:
            reason = attempt.message or DEFAULT_LIMIT_REASON
            logger.warning(f"Zoom rate limit for {who}: {reason}")
            return RegistrationResult(
                outcome=RegistrationOutcome.RATE_LIMITED,
                message=f"Zoom limit: {reason}. Please try again later (after GMT 00:00).",
                status_code=attempt.status_code
            )

    return RegistrationResult(
        outcome=RegistrationOutcome.FAILED,
        message=f"Zoom register failed: {attempt.status_code} {attempt.message}".strip(),
        status_code=attempt.status_code
    )
