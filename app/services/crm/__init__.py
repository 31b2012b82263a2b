"""
CRM (GoHighLevel)
Phone-based contact lookup and custom-field reads
"""
from app.services.crm.client import GHLClient, CustomFieldCache
from app.services.crm.contacts import (
    Contact,
    find_contact_by_phone,
    read_custom_field,
    read_display_name_field,
)

__all__ = [
    "GHLClient",
    "CustomFieldCache",
    "Contact",
    "find_contact_by_phone",
    "read_custom_field",
    "read_display_name_field",
]
