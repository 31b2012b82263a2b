"""
GoHighLevel API client
Contact search and custom-field schema lookups over the v1 REST API.

Every GET is tried against the configured host first and then the
LeadConnector host; a 429 is honored with one Retry-After-driven retry
on the same host before moving on.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.circuit_breakers import call_with_retry_after, parse_retry_after
from app.core.exceptions import CRMError, RetryAfterError

logger = logging.getLogger(__name__)

CONTACTS_PATH = "/v1/contacts/"
CUSTOM_FIELDS_PATH = "/v1/custom-fields/"

CUSTOM_FIELD_PAGE_SIZE = 200
CUSTOM_FIELD_MAX_PAGES = 40


# ============================================================================
# CUSTOM FIELD ID CACHE
# ============================================================================

class CustomFieldCache:
    """
    field key -> field id memo.

    Field ids are schema-level and never change per request, so one lookup
    per key is enough for the life of the process. A key that was looked up
    and not found is cached as None.
    """

    def __init__(self):
        self._ids: Dict[str, Optional[str]] = {}

    def __contains__(self, field_key: str) -> bool:
        return field_key in self._ids

    def get(self, field_key: str) -> Optional[str]:
        return self._ids.get(field_key)

    def set(self, field_key: str, field_id: Optional[str]) -> None:
        self._ids[field_key] = field_id

    def invalidate(self, field_key: Optional[str] = None) -> None:
        """Drop one key, or everything when no key is given."""
        if field_key is None:
            self._ids.clear()
        else:
            self._ids.pop(field_key, None)


# ============================================================================
# CLIENT
# ============================================================================

class GHLClient:
    """Thin async wrapper over the GHL endpoints this service reads."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: Optional[str] = None,
        base_urls: Optional[List[str]] = None,
        field_cache: Optional[CustomFieldCache] = None,
        retry_after_max: Optional[float] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        self.http_client = http_client
        self.api_key = api_key if api_key is not None else settings.ghl_api_key
        hosts = base_urls or [settings.ghl_base_url, settings.ghl_fallback_base_url]
        self.base_urls = list(dict.fromkeys(h.rstrip("/") for h in hosts if h))
        self.field_cache = field_cache or CustomFieldCache()
        self.retry_after_max = retry_after_max if retry_after_max is not None else settings.crm_retry_after_max
        self._sleep = sleep

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET `path` from the first host that answers successfully.

        Raises:
            CRMError: If no API key is configured or every host failed
        """
        if not self.api_key:
            raise CRMError("GHL_API_KEY not set")

        query = {k: v for k, v in (params or {}).items() if v is not None}
        errors = []

        for base in self.base_urls:
            try:
                return await call_with_retry_after(
                    self._get_once,
                    base,
                    path,
                    query,
                    max_wait=self.retry_after_max,
                    sleep=self._sleep
                )
            except RetryAfterError as e:
                errors.append(f"{base} -> 429: {e}")
            except httpx.HTTPStatusError as e:
                errors.append(f"{base} -> {e.response.status_code}: {e.response.text[:200]}")
            except httpx.HTTPError as e:
                errors.append(f"{base} -> {type(e).__name__}: {e}")

        logger.warning(f"All GHL hosts failed for {path}: {'; '.join(errors)}")
        raise CRMError(f"All GHL hosts failed for {path}\n" + "\n".join(errors))

    async def _get_once(self, base: str, path: str, params: Dict[str, Any]) -> Any:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json"
        }
        response = await self.http_client.get(f"{base}{path}", headers=headers, params=params)

        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            raise RetryAfterError(response.text[:200] or "rate limited", retry_after)

        response.raise_for_status()

        if not response.text.strip():
            return {}
        try:
            return response.json()
        except ValueError:
            return {"_raw_text": response.text}

    # ------------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------------

    async def search_contacts(self, query: str, page: int = 1, limit: int = 25) -> List[Dict[str, Any]]:
        """Free-text contact search. Results are candidates, not matches."""
        data = await self.get(CONTACTS_PATH, {"query": query, "limit": limit, "page": page})
        return pick_records(data, ("contacts", "items", "data"))

    async def list_custom_fields(self, page: int = 1, limit: int = CUSTOM_FIELD_PAGE_SIZE) -> List[Dict[str, Any]]:
        data = await self.get(CUSTOM_FIELDS_PATH, {"limit": limit, "page": page})
        if isinstance(data, dict):
            for key in ("customFields", "fields", "data"):
                if isinstance(data.get(key), list):
                    return [f for f in data[key] if isinstance(f, dict)]
        return []

    async def get_custom_field_id(self, field_key: str) -> Optional[str]:
        """
        Resolve a custom field key (e.g. "contact.zoom_display_name") to its id.

        Matches on `fieldKey`, falling back to `name`. Cached per key.
        """
        if field_key in self.field_cache:
            return self.field_cache.get(field_key)

        found: Optional[str] = None
        for page in range(1, CUSTOM_FIELD_MAX_PAGES + 1):
            fields = await self.list_custom_fields(page=page)
            if not fields:
                break
            for field in fields:
                key = str(field.get("fieldKey") or field.get("name") or "")
                if key == field_key:
                    found = field.get("id") or None
                    break
            if found or len(fields) < CUSTOM_FIELD_PAGE_SIZE:
                break

        logger.debug(f"Custom field {field_key} -> {found}")
        self.field_cache.set(field_key, found)
        return found


def pick_records(data: Any, keys) -> List[Dict[str, Any]]:
    """
    Pull the record list out of a GHL payload.

    Accounts on different API versions wrap results differently, so try the
    known keys and then the first list of objects in the payload.
    """
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    if not isinstance(data, dict):
        return []
    for key in keys:
        if isinstance(data.get(key), list):
            return [r for r in data[key] if isinstance(r, dict)]
    for value in data.values():
        if isinstance(value, list) and value and isinstance(value[0], dict):
            return [r for r in value if isinstance(r, dict)]
    return []
