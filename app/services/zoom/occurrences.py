"""
Occurrence Selection
Session tokens look like "<webinarId>|<occurrenceId>", "<webinarId>|auto"
or just "<webinarId>". Without a concrete occurrence, the nearest future
one is picked.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.exceptions import InvalidInputError, NoFutureOccurrenceError
from app.services.zoom.client import Occurrence, ZoomClient

logger = logging.getLogger(__name__)

AUTO = "auto"
SEPARATOR = "|"


@dataclass(frozen=True)
class SessionToken:
    webinar_id: str
    occurrence_selector: Optional[str] = None

    @property
    def is_auto(self) -> bool:
        return not self.occurrence_selector or self.occurrence_selector.lower() == AUTO


def parse_session_token(token: Optional[str]) -> SessionToken:
    """
    Parse "<webinarId>|<selector>".

    Raises:
        InvalidInputError: Empty token, empty webinar id, or more than one "|"
    """
    raw = (token or "").strip()
    if not raw:
        raise InvalidInputError("Missing 'session'")

    parts = raw.split(SEPARATOR)
    if len(parts) > 2:
        raise InvalidInputError("Invalid 'session' format.")

    webinar_id = parts[0].strip()
    if not webinar_id:
        raise InvalidInputError("Invalid 'session' format.")

    selector = parts[1].strip() if len(parts) == 2 else ""
    return SessionToken(webinar_id=webinar_id, occurrence_selector=selector or None)


def session_from_parts(webinar_id: Optional[str], occurrence_id: Optional[str] = None) -> SessionToken:
    """Build a token from separate webinarId/occurrenceId request fields."""
    webinar = (webinar_id or "").strip()
    if not webinar or SEPARATOR in webinar:
        raise InvalidInputError("Missing 'session' or 'webinarId' in body")
    selector = (occurrence_id or "").strip()
    return SessionToken(webinar_id=webinar, occurrence_selector=selector or None)


def pick_nearest(occurrences: Sequence[Occurrence], now: datetime) -> Optional[Occurrence]:
    """Earliest occurrence starting strictly after `now`."""
    upcoming = sorted((o for o in occurrences if o.starts_at > now), key=lambda o: o.starts_at)
    return upcoming[0] if upcoming else None


async def select_occurrence(
    client: ZoomClient,
    token: Union[SessionToken, str],
    now: Optional[datetime] = None
) -> str:
    """
    Occurrence id to register for.

    An explicit selector is used verbatim, with no provider call: Zoom
    validates it when the registrant is created.

    Raises:
        InvalidInputError: Malformed token
        NoFutureOccurrenceError: "auto" and nothing upcoming
    """
    session = parse_session_token(token) if isinstance(token, str) else token
    if not session.is_auto:
        return session.occurrence_selector

    occurrences = await client.list_occurrences(session.webinar_id)
    nearest = pick_nearest(occurrences, now or datetime.now(timezone.utc))
    if nearest is None:
        logger.info(f"Webinar {session.webinar_id}: no future occurrence among {len(occurrences)}")
        raise NoFutureOccurrenceError(session.webinar_id)

    logger.info(f"Webinar {session.webinar_id}: picked occurrence {nearest.occurrence_id} ({nearest.starts_at.isoformat()})")
    return nearest.occurrence_id


# ============================================================================
# SESSION LISTING
# ============================================================================

def format_label(starts_at: datetime, tz_name: Optional[str] = None) -> str:
    """"Mon, Jan 6, 7:30 PM" in the configured display timezone."""
    local = starts_at.astimezone(ZoneInfo(tz_name or settings.session_label_timezone))
    hour = local.hour % 12 or 12
    return f"{local:%a}, {local:%b} {local.day}, {hour}:{local:%M} {local:%p}"


async def list_sessions(client: ZoomClient, webinar_id: str) -> List[Dict[str, str]]:
    """All occurrences, oldest first, with a display label."""
    occurrences = sorted(await client.list_occurrences(webinar_id), key=lambda o: o.starts_at)
    return [
        {
            "webinarId": o.webinar_id,
            "occurrenceId": o.occurrence_id,
            "startsAtIso": o.starts_at.isoformat().replace("+00:00", "Z"),
            "label": format_label(o.starts_at),
        }
        for o in occurrences
    ]
