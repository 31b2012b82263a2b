"""
Join Service
phone + session token -> Zoom join URL.

Flow:
1. Validate input (phone, session token) before any network call
2. Pick the occurrence (explicit, or nearest future one)
3. Look up the GHL contact by phone (fail-soft: guest path)
4. Resolve display name + email
5. Create or reuse the Zoom registrant
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import InvalidInputError
from app.services.crm import Contact, GHLClient, find_contact_by_phone, read_display_name_field
from app.services.identity import ResolvedIdentity, build_identity
from app.services.phone import mask_phone, normalize_phone
from app.services.zoom import (
    RegistrationOutcome,
    SessionToken,
    ZoomClient,
    list_sessions,
    register_or_reuse,
    select_occurrence,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResolution:
    webinar_id: str
    occurrence_id: str
    join_url: str
    outcome: RegistrationOutcome
    identity: ResolvedIdentity

    @property
    def email_mode(self) -> str:
        return self.identity.email_source


@dataclass(frozen=True)
class IdentityPreview:
    contact: Optional[Contact]
    identity: ResolvedIdentity


def require_phone(phone: Optional[str]) -> str:
    raw = (phone or "").strip()
    if not raw:
        raise InvalidInputError("Missing 'phone'")
    if not normalize_phone(raw):
        raise InvalidInputError("Invalid 'phone'")
    return raw


class JoinService:
    """Wires the CRM and Zoom clients into the join flow. Stateless per request."""

    def __init__(
        self,
        zoom: ZoomClient,
        crm: GHLClient,
        always_alias_email: Optional[bool] = None
    ):
        self.zoom = zoom
        self.crm = crm
        self.always_alias_email = settings.always_alias_email if always_alias_email is None else always_alias_email

    async def resolve_identity(self, phone: str, zoom_name: Optional[str] = None) -> Tuple[Optional[Contact], ResolvedIdentity]:
        """Contact lookup + name/email resolution. Never fails on CRM trouble."""
        contact = await find_contact_by_phone(self.crm, phone)
        crm_name = await read_display_name_field(self.crm, contact)
        identity = build_identity(
            contact,
            crm_display_name=crm_name,
            form_display_name=zoom_name,
            request_phone=phone,
            alias_forced=self.always_alias_email
        )
        return contact, identity

    async def resolve_join(
        self,
        session: SessionToken,
        phone: Optional[str],
        zoom_name: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> JoinResolution:
        """
        Full join flow.

        Raises:
            InvalidInputError: Missing/malformed phone
            NoFutureOccurrenceError: "auto" session with nothing upcoming
            ProviderRateLimitedError: Zoom limit persisted after reuse lookup
            ProviderUnavailableError: Any other Zoom failure
        """
        raw_phone = require_phone(phone)

        occurrence_id = await select_occurrence(self.zoom, session, now=now)
        _, identity = await self.resolve_identity(raw_phone, zoom_name)

        result = await register_or_reuse(self.zoom, session.webinar_id, occurrence_id, identity)
        join_url = result.unwrap()

        logger.info(
            f"Join resolved for {mask_phone(raw_phone)}: {session.webinar_id}/{occurrence_id} "
            f"({result.outcome.value}, email {identity.email_source})"
        )
        return JoinResolution(
            webinar_id=session.webinar_id,
            occurrence_id=occurrence_id,
            join_url=join_url,
            outcome=result.outcome,
            identity=identity,
        )

    async def preview(self, phone: Optional[str], zoom_name: Optional[str] = None) -> IdentityPreview:
        """What a registration would send to Zoom, without registering."""
        raw_phone = require_phone(phone)
        contact, identity = await self.resolve_identity(raw_phone, zoom_name)
        return IdentityPreview(contact=contact, identity=identity)

    async def sessions(self, webinar_id: str) -> List[Dict[str, str]]:
        return await list_sessions(self.zoom, webinar_id)
