"""
Zoom Webinars
OAuth token cache, occurrence selection and idempotent registration
"""
from app.services.zoom.token import AccessTokenCache
from app.services.zoom.client import ZoomClient, Occurrence, Registrant, CreateAttempt, CreateStatus
from app.services.zoom.occurrences import (
    SessionToken,
    format_label,
    list_sessions,
    parse_session_token,
    pick_nearest,
    select_occurrence,
    session_from_parts,
)
from app.services.zoom.registration import (
    RegistrationOutcome,
    RegistrationResult,
    find_registrant_by_email,
    register_or_reuse,
)

__all__ = [
    "AccessTokenCache",
    "ZoomClient",
    "Occurrence",
    "Registrant",
    "CreateAttempt",
    "CreateStatus",
    "SessionToken",
    "parse_session_token",
    "session_from_parts",
    "pick_nearest",
    "select_occurrence",
    "format_label",
    "list_sessions",
    "RegistrationOutcome",
    "RegistrationResult",
    "find_registrant_by_email",
    "register_or_reuse",
]
