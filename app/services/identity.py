"""
Identity Resolution Service
Turns a (possibly missing) CRM contact plus an optional form hint into the
name/email pair a Zoom registrant is created with.

Display name cascade (first usable value wins):
1. GHL custom field (contact.zoom_display_name)
2. zoomName hint from the join form
3. Guest label

Email:
- Real contact email, unless aliasing is forced
- Otherwise a deterministic noemail+<base>-<fingerprint>@<domain> alias.
  The fingerprint is derived from the display name, so renaming yourself
  yields a new Zoom registrant instead of reusing the old name.
"""
import logging
import random
import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from app.core.config import settings
from app.services.crm.contacts import Contact
from app.services.phone import digits_only

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 96

# Zoom rejects or renders a dash for an empty last_name; U+200B shows nothing.
EMPTY_LAST_NAME = "\u200b"

_WRAPPING = re.compile(r"^[\"'“”‘’\-–—\s]+|[\"'“”‘’\-–—\s]+$")
_EMAIL = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_DIGIT_RUN = re.compile(r"\+?\d(?:[\s\-()]*\d){5,}")
_CUT = re.compile(r"[@#|]")
_PICTOGRAPHIC = re.compile(
    "["
    "\U0001F000-\U0001FAFF"  # emoticons, pictographs, transport, flags, extended-A
    "\u2300-\u23FF"          # misc technical (watch, hourglass...)
    "\u2600-\u27BF"          # misc symbols, dingbats
    "\u2B00-\u2BFF"          # arrows, stars
    "\uFE0F\u200D"           # emoji presentation selector, ZWJ
    "]+"
)
_WHITESPACE = re.compile(r"\s+")
_PLACEHOLDER_TEMPLATE = re.compile(r"^\{\{.*\}\}$", re.DOTALL)
_PLACEHOLDER_LITERAL = re.compile(r"^(null|undefined|na|n/a)$", re.IGNORECASE)

_KEEP_PUNCTUATION = "-'.,"


# ============================================================================
# SANITIZATION
# ============================================================================

def _keep_char(ch: str) -> bool:
    if ch.isspace() or ch in _KEEP_PUNCTUATION:
        return True
    # Letters, numbers and combining marks (scripts like Thai/Devanagari need M*)
    return unicodedata.category(ch)[0] in ("L", "N", "M")


def sanitize_name(value: Optional[str], max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Clean a display name for Zoom.

    Emails and long digit runs mean the field was misused, so they are
    removed; anything after @, # or | is template/injection debris.

        "  'John \"Doe\" 😀 john@x.com +1 555-123-4567'  "  ->  "John Doe"

    Returns "" when nothing name-like is left.
    """
    text = unicodedata.normalize("NFKC", value or "")
    text = _WRAPPING.sub("", text)
    text = _EMAIL.sub(" ", text)
    text = _DIGIT_RUN.sub(" ", text)
    text = _CUT.split(text, maxsplit=1)[0]
    text = _PICTOGRAPHIC.sub("", text)
    text = "".join(ch if _keep_char(ch) else " " for ch in text)
    text = _WHITESPACE.sub(" ", text)
    text = _WRAPPING.sub("", text)
    return text[:max_length].strip()


def looks_like_placeholder(value: Optional[str]) -> bool:
    """True for values that are present but mean "nothing" ({{contact.x}}, "null", "N/A", blanks)."""
    s = (value or "").strip()
    if not s:
        return True
    if _PLACEHOLDER_TEMPLATE.match(s):
        return True
    return bool(_PLACEHOLDER_LITERAL.match(s))


# ============================================================================
# DISPLAY NAME
# ============================================================================

@dataclass(frozen=True)
class DisplayName:
    name: str
    source: str  # "crm", "form" or "default"


def resolve_display_name(
    crm_candidate: Optional[str],
    form_candidate: Optional[str],
    guest_label: Optional[str] = None
) -> DisplayName:
    """
    Pick the display name. Total: always returns a non-empty name.

    A CRM value that sanitizes to nothing falls through to the form hint,
    never to other CRM fields.
    """
    tiers: Sequence[Tuple[str, Callable[[], Optional[str]]]] = (
        ("crm", lambda: crm_candidate),
        ("form", lambda: form_candidate),
    )

    for source, extract in tiers:
        raw = extract()
        if looks_like_placeholder(raw):
            continue
        name = sanitize_name(raw)
        if name:
            return DisplayName(name=name, source=source)
        logger.debug(f"Display name candidate from {source} sanitized to empty")

    return DisplayName(name=guest_label or settings.guest_label, source="default")


def split_display_name(name: str, guest_label: Optional[str] = None) -> Tuple[str, str]:
    """First token / remainder. The remainder is never empty (EMPTY_LAST_NAME)."""
    parts = (name or "").split()
    if not parts:
        return guest_label or settings.guest_label, EMPTY_LAST_NAME
    return parts[0], " ".join(parts[1:]) or EMPTY_LAST_NAME


# ============================================================================
# EMAIL STRATEGY
# ============================================================================

@dataclass(frozen=True)
class EmailChoice:
    email: str
    source: str  # "real" or "alias"


def fnv1a_32(text: str) -> int:
    """32-bit FNV-1a over UTF-16 code units."""
    h = 0x811C9DC5
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * 0x01000193) & 0xFFFFFFFF
    return h


def name_fingerprint(name: str) -> str:
    return format(fnv1a_32(name), "x")[:6]


def alias_email_for(
    phone: Optional[str],
    contact_id: Optional[str],
    name_variant: Optional[str],
    domain: Optional[str] = None
) -> str:
    """
    noemail+<base>[-<fingerprint>]@<domain>

    base: phone digits, else contact id, else a random number (only when
    neither exists, so only that branch is non-deterministic).
    """
    base = digits_only(phone) or (contact_id or "") or str(random.randrange(10 ** 9))
    variant = (name_variant or "").strip()
    suffix = f"-{name_fingerprint(variant)}" if variant else ""
    return f"noemail+{base}{suffix}@{domain or settings.alias_email_domain}"


def choose_email(
    contact: Optional[Contact],
    resolved_name: str,
    alias_forced: bool,
    phone: Optional[str] = None,
    domain: Optional[str] = None
) -> EmailChoice:
    """
    Real email when the contact has a usable one and aliasing isn't forced,
    otherwise the alias. `phone` is the request phone, used when the
    contact has none.
    """
    real = (contact.email or "").strip() if contact else ""
    if real and "@" in real and not alias_forced:
        return EmailChoice(email=real, source="real")

    alias_phone = (contact.phone if contact and contact.phone else None) or phone
    alias = alias_email_for(alias_phone, contact.id if contact else None, resolved_name, domain)
    return EmailChoice(email=alias, source="alias")


# ============================================================================
# RESOLVED IDENTITY
# ============================================================================

@dataclass(frozen=True)
class ResolvedIdentity:
    """Everything a Zoom registrant is created with. Lives for one request."""
    first_name: str
    last_name: str
    email: str
    phone: str
    email_source: str
    display_name: str
    display_name_source: str


def build_identity(
    contact: Optional[Contact],
    crm_display_name: Optional[str],
    form_display_name: Optional[str],
    request_phone: str,
    alias_forced: Optional[bool] = None
) -> ResolvedIdentity:
    """Run the display-name cascade and the email strategy for one caller."""
    display = resolve_display_name(crm_display_name, form_display_name)
    first_name, last_name = split_display_name(display.name)

    phone = ((contact.phone if contact else None) or request_phone).strip()
    forced = settings.always_alias_email if alias_forced is None else alias_forced
    choice = choose_email(contact, display.name, forced, phone=phone)

    logger.info(
        f"Identity: name from {display.source}, email {choice.source} "
        f"({mask_email(choice.email)}), contact={'yes' if contact else 'no'}"
    )

    return ResolvedIdentity(
        first_name=first_name,
        last_name=last_name,
        email=choice.email,
        phone=phone,
        email_source=choice.source,
        display_name=display.name,
        display_name_source=display.source,
    )


def mask_email(email: str) -> str:
    """For log lines: "jo***@example.com"."""
    local, _, domain = (email or "").partition("@")
    if not domain:
        return "***"
    return f"{local[:2]}***@{domain}"
