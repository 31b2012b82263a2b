"""
Join Schemas
Request/response models for the register, complete and peek endpoints
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator


class RegisterRequest(BaseModel):
    """
    POST /api/ghl/register body.

    Either `session` ("<webinarId>|<occurrenceId|auto>") or
    `webinarId` (+ optional `occurrenceId`) identifies the webinar.
    """
    session: Optional[str] = None
    webinarId: Optional[str] = None
    occurrenceId: Optional[str] = None
    phone: Optional[str] = None
    zoomName: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("session", "webinarId", "occurrenceId", "phone", "zoomName", mode="before")
    @classmethod
    def numbers_to_str(cls, value):
        # Zoom ids and phones often arrive as JSON numbers
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class RegisterResponse(BaseModel):
    ok: bool = True
    webinarId: str
    occurrenceId: str
    join_url: str
    email_mode: str  # "real" or "alias"


class ContactSummary(BaseModel):
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None


class ZoomMappingPreview(BaseModel):
    """Exactly what would be sent to Zoom."""
    first_name: str
    last_name: str
    email: str
    phone: str


class PeekResponse(BaseModel):
    ok: bool = True
    mode: str  # "contact-found" or "no-contact"
    contact: Optional[ContactSummary] = None
    zoomDisplayNameResolved: str
    displayNameSource: str
    emailMode: str
    zoomMappingPreview: ZoomMappingPreview


class SessionView(BaseModel):
    webinarId: str
    occurrenceId: str
    startsAtIso: str
    label: str
