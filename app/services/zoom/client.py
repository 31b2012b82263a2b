"""
Zoom Webinar API helpers
Occurrence listing and registrant listing/creation over /v2/webinars.

Registrant creation never raises on an HTTP error status: it returns a
CreateAttempt so the registration engine can decide what a 409/400/429
means (see app.services.zoom.registration).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.exceptions import ProviderUnavailableError
from app.services.zoom.token import AccessTokenCache

logger = logging.getLogger(__name__)


# ============================================================================
# MODELS
# ============================================================================

@dataclass(frozen=True)
class Occurrence:
    webinar_id: str
    occurrence_id: str
    starts_at: datetime


@dataclass(frozen=True)
class Registrant:
    email: str
    join_url: Optional[str] = None
    registrant_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Registrant":
        registrant_id = data.get("registrant_id") or data.get("id")
        return cls(
            email=str(data.get("email") or ""),
            join_url=data.get("join_url") or None,
            registrant_id=str(registrant_id) if registrant_id else None,
        )


class CreateStatus(str, Enum):
    CREATED = "created"
    CONFLICT = "conflict"          # 409, or 400 "already registered"
    RATE_LIMITED = "rate_limited"  # 429 (per-registrant daily limit)
    FAILED = "failed"


@dataclass(frozen=True)
class CreateAttempt:
    status: CreateStatus
    registrant: Optional[Registrant] = None
    status_code: Optional[int] = None
    message: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)


def parse_start_time(value: Any) -> Optional[datetime]:
    """Zoom start_time ("2025-01-06T11:30:00Z") -> aware UTC datetime."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _json_or_raw(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"_raw": response.text}
    return data if isinstance(data, dict) else {"_raw": data}


# ============================================================================
# CLIENT
# ============================================================================

class ZoomClient:
    """Async Zoom REST client. One token exchange per expired token."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_cache: Optional[AccessTokenCache] = None,
        base_url: Optional[str] = None
    ):
        self.http_client = http_client
        self.token_cache = token_cache or AccessTokenCache(http_client)
        self.base_url = (base_url or settings.zoom_api_base_url).rstrip("/")

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        token = await self.token_cache.get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json"
        }
        return await self.http_client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)

    @staticmethod
    def _webinar_path(webinar_id: str) -> str:
        return f"/v2/webinars/{quote(str(webinar_id), safe='')}"

    async def list_occurrences(self, webinar_id: str) -> List[Occurrence]:
        """
        All occurrences of a recurring webinar (past ones included).

        Raises:
            ProviderUnavailableError: If Zoom returns an error status
        """
        try:
            response = await self._request("GET", self._webinar_path(webinar_id))
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"Zoom webinar get failed: {e}") from e

        data = _json_or_raw(response)
        if response.status_code >= 400:
            logger.error(f"Zoom webinar get failed: {response.status_code} - {response.text[:200]}")
            raise ProviderUnavailableError(
                f"Zoom webinar get failed: {response.status_code} {data.get('message', '')}".strip(),
                upstream_status=response.status_code
            )

        occurrences = []
        for item in data.get("occurrences") or []:
            if not isinstance(item, dict):
                logger.warning(f"Skipping malformed occurrence on webinar {webinar_id}: {item!r}")
                continue
            starts_at = parse_start_time(item.get("start_time"))
            if item.get("occurrence_id") is None or starts_at is None:
                logger.warning(f"Skipping malformed occurrence on webinar {webinar_id}: {item}")
                continue
            occurrences.append(Occurrence(
                webinar_id=str(webinar_id),
                occurrence_id=str(item["occurrence_id"]),
                starts_at=starts_at,
            ))
        return occurrences

    async def list_registrants(
        self,
        webinar_id: str,
        occurrence_id: Optional[str] = None,
        status: str = "approved",
        page_size: int = 300,
        next_page_token: Optional[str] = None
    ) -> Tuple[List[Registrant], Optional[str]]:
        """
        One page of registrants.

        Returns:
            (registrants, next_page_token or None)

        Raises:
            ProviderUnavailableError: If Zoom returns an error status
        """
        params = {"status": status, "page_size": page_size}
        if occurrence_id:
            params["occurrence_id"] = occurrence_id
        if next_page_token:
            params["next_page_token"] = next_page_token

        try:
            response = await self._request("GET", f"{self._webinar_path(webinar_id)}/registrants", params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"Zoom registrant list failed: {e}") from e

        data = _json_or_raw(response)
        if response.status_code >= 400:
            raise ProviderUnavailableError(
                f"Zoom registrant list failed: {response.status_code}",
                upstream_status=response.status_code
            )

        registrants = [Registrant.from_api(r) for r in data.get("registrants") or [] if isinstance(r, dict)]
        return registrants, (data.get("next_page_token") or None)

    async def create_registrant(
        self,
        webinar_id: str,
        occurrence_id: str,
        first_name: str,
        last_name: str,
        email: str,
        phone: Optional[str] = None
    ) -> CreateAttempt:
        """Register one person for one occurrence. HTTP errors come back as a CreateAttempt."""
        body = {
            "email": email,
            "first_name": first_name,
            "last_name": last_name or " ",
            "occurrence_ids": occurrence_id,
        }
        if phone:
            body["phone"] = phone

        try:
            response = await self._request(
                "POST",
                f"{self._webinar_path(webinar_id)}/registrants",
                params={"occurrence_ids": occurrence_id},
                json=body
            )
        except httpx.HTTPError as e:
            logger.error(f"Zoom register request failed: {e}")
            return CreateAttempt(status=CreateStatus.FAILED, message=f"Zoom register request failed: {e}")

        data = _json_or_raw(response)
        code = response.status_code

        if code < 400:
            # Here `id` is the webinar id, not the registrant's
            registrant = Registrant(
                email=email,
                join_url=data.get("join_url") or None,
                registrant_id=str(data["registrant_id"]) if data.get("registrant_id") else None,
            )
            return CreateAttempt(status=CreateStatus.CREATED, registrant=registrant, status_code=code, payload=data)

        message = str(data.get("message") or data.get("_raw") or "")
        if code in (400, 409):
            status = CreateStatus.CONFLICT
        elif code == 429:
            status = CreateStatus.RATE_LIMITED
        else:
            status = CreateStatus.FAILED

        logger.warning(f"Zoom register failed: {code} ({status.value}) {message[:200]}")
        return CreateAttempt(status=status, status_code=code, message=message, payload=data)
