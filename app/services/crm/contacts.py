"""
Contact Resolution
Finds the GHL contact behind a phone number and reads its display-name field.

Identity enrichment is best-effort: every failure here degrades to
"no contact" / "no name" so a guest can still be registered.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from app.core.config import settings
from app.services.crm.client import GHLClient
from app.services.phone import mask_phone, normalize_phone, phone_variants

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 25
SEARCH_MAX_PAGES = 2


@dataclass(frozen=True)
class Contact:
    """A GHL contact, read-only."""
    id: str
    phone: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    custom_fields: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "Contact":
        # Some accounts return `customField`, others `customFields`
        pairs = []
        for key in ("customField", "customFields"):
            entries = record.get(key)
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if isinstance(entry, dict) and entry.get("id"):
                    pairs.append((str(entry["id"]), entry.get("value")))

        return cls(
            id=str(record.get("id") or ""),
            phone=record.get("phone") if isinstance(record.get("phone"), str) else None,
            email=record.get("email") if isinstance(record.get("email"), str) else None,
            first_name=record.get("firstName"),
            last_name=record.get("lastName"),
            custom_fields=tuple(pairs),
        )

    def custom_value(self, field_id: str) -> Any:
        for entry_id, value in self.custom_fields:
            if entry_id == field_id:
                return value
        return None


# ============================================================================
# LOOKUP BY PHONE
# ============================================================================

async def find_contact_by_phone(
    client: GHLClient,
    raw_phone: Optional[str],
    page_size: int = SEARCH_PAGE_SIZE,
    max_pages: int = SEARCH_MAX_PAGES
) -> Optional[Contact]:
    """
    Find the contact whose own `phone` normalizes to the same number.

    Search results are free-text matches, so each candidate is verified
    against the normalized target. Returns None when nothing matches or
    when the CRM could not be reached.
    """
    if not raw_phone or not raw_phone.strip():
        return None

    try:
        return await _find_by_core_phone(client, raw_phone.strip(), page_size, max_pages)
    except Exception as e:
        logger.warning(f"GHL lookup failed for {mask_phone(raw_phone)}, continuing as guest: {e}")
        return None


async def _find_by_core_phone(
    client: GHLClient,
    raw_phone: str,
    page_size: int,
    max_pages: int
) -> Optional[Contact]:
    target = normalize_phone(raw_phone)
    if not target:
        return None

    for query in phone_variants(raw_phone):
        for page in range(1, max_pages + 1):
            records = await client.search_contacts(query, page=page, limit=page_size)
            if not records:
                break

            for record in records:
                phone = record.get("phone")
                if isinstance(phone, str) and phone and normalize_phone(phone) == target:
                    contact = Contact.from_api(record)
                    logger.info(f"GHL contact {contact.id} matched {mask_phone(raw_phone)} (query={query!r}, page={page})")
                    return contact

            if len(records) < page_size:
                break

    logger.info(f"No GHL contact for {mask_phone(raw_phone)}")
    return None


# ============================================================================
# CUSTOM FIELDS
# ============================================================================

def value_to_string(value: Any) -> str:
    """Flatten a custom-field value (string, number, list, option object) to text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return " ".join(value_to_string(v) for v in value)
    if isinstance(value, dict):
        for key in ("label", "value", "name", "title"):
            if isinstance(value.get(key), str):
                return value[key]
        try:
            return json.dumps(value)
        except (TypeError, ValueError):
            return ""
    return ""


async def read_custom_field(client: GHLClient, contact: Contact, field_key: str) -> Optional[str]:
    """Value of the custom field `field_key` on `contact`, or None if unset/unknown."""
    field_id = await client.get_custom_field_id(field_key)
    if not field_id:
        return None
    text = value_to_string(contact.custom_value(field_id)).strip()
    return text or None


async def read_display_name_field(
    client: GHLClient,
    contact: Optional[Contact],
    field_key: Optional[str] = None
) -> Optional[str]:
    """Fail-soft read of the Zoom display-name custom field."""
    if contact is None:
        return None
    key = field_key or settings.display_name_field_key
    try:
        return await read_custom_field(client, contact, key)
    except Exception as e:
        logger.warning(f"Could not read {key} for contact {contact.id}: {e}")
        return None
