"""
Join Routes
Phone + session -> Zoom join link (JSON or redirect), plus an identity preview
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from app.core.dependencies import get_join_service
from app.core.exceptions import InvalidInputError
from app.middleware.rate_limit import join_rate_limit, limiter
from app.models.schemas import (
    ContactSummary,
    PeekResponse,
    RegisterRequest,
    RegisterResponse,
    ZoomMappingPreview,
)
from app.services.join import JoinService
from app.services.zoom.occurrences import parse_session_token, session_from_parts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ghl", tags=["join"])


@router.post("/register", response_model=RegisterResponse)
@limiter.limit(join_rate_limit)
async def register(
    request: Request,
    body: RegisterRequest,
    service: JoinService = Depends(get_join_service)
):
    """
    Register (or reuse) the caller for a webinar occurrence and return the join URL.

    Body: {"session": "<webinarId>|<occurrenceId|auto>", "phone": "...", "zoomName": "..."}
    or    {"webinarId": "...", "occurrenceId": "...", "phone": "..."}
    """
    if not (body.phone or "").strip():
        raise InvalidInputError("Missing 'phone' in body")

    if body.session:
        session = parse_session_token(body.session)
    elif body.webinarId:
        session = session_from_parts(body.webinarId, body.occurrenceId)
    else:
        raise InvalidInputError("Missing 'session' or 'webinarId' in body")

    resolution = await service.resolve_join(session, body.phone, zoom_name=body.zoomName)

    return RegisterResponse(
        webinarId=resolution.webinar_id,
        occurrenceId=resolution.occurrence_id,
        join_url=resolution.join_url,
        email_mode=resolution.email_mode,
    )


@router.get("/complete")
@limiter.limit(join_rate_limit)
async def complete(
    request: Request,
    session: Optional[str] = Query(default=None),
    phone: Optional[str] = Query(default=None),
    zoomName: Optional[str] = Query(default=None),
    service: JoinService = Depends(get_join_service)
):
    """
    Same as /register, but redirects the browser straight to Zoom (302).
    Used as the target of "join now" links.
    """
    if not (session or "").strip() or not (phone or "").strip():
        raise InvalidInputError("Missing 'session' or 'phone' in query.")

    resolution = await service.resolve_join(parse_session_token(session), phone, zoom_name=zoomName)
    return RedirectResponse(resolution.join_url, status_code=302)


@router.get("/peek", response_model=PeekResponse)
async def peek(
    phone: Optional[str] = Query(default=None),
    zoomName: Optional[str] = Query(default=None),
    service: JoinService = Depends(get_join_service)
):
    """Preview the contact match and the Zoom registrant fields. Registers nothing."""
    if not (phone or "").strip():
        raise InvalidInputError("Missing 'phone' in query.")

    preview = await service.preview(phone, zoom_name=zoomName)
    contact = preview.contact
    identity = preview.identity

    return PeekResponse(
        mode="contact-found" if contact else "no-contact",
        contact=ContactSummary(id=contact.id, email=contact.email, phone=contact.phone) if contact else None,
        zoomDisplayNameResolved=identity.display_name,
        displayNameSource=identity.display_name_source,
        emailMode=identity.email_source,
        zoomMappingPreview=ZoomMappingPreview(
            first_name=identity.first_name,
            last_name=identity.last_name,
            email=identity.email,
            phone=identity.phone,
        ),
    )
