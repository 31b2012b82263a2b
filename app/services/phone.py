"""
Phone Normalization
Canonical E.164-style form used to match a caller against CRM records.

Bare local-format numbers (fixed digit length, e.g. 8 digits in Hong Kong)
get the configured home country code. Matching is exact string equality on
the normalized form, never substring or fuzzy.
"""
import logging
import re
from typing import List, Optional

import phonenumbers

from app.core.config import settings

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r"\D+")


def _home_code(country_code: Optional[str]) -> str:
    return _NON_DIGIT.sub("", country_code if country_code is not None else settings.default_country_code)


def _local_length(local_length: Optional[int]) -> int:
    return local_length if local_length is not None else settings.local_number_length


def _format_e164(digits: str) -> str:
    """Format `+<digits>` with libphonenumber, or leave it as-is if it can't be parsed."""
    try:
        parsed = phonenumbers.parse(f"+{digits}", None)
    except phonenumbers.NumberParseException:
        return f"+{digits}"
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def normalize_phone(
    raw: Optional[str],
    country_code: Optional[str] = None,
    local_length: Optional[int] = None
) -> str:
    """
    Canonicalize a phone number.

    Examples (home code 852, local length 8):
        "9123 4567"        -> "+85291234567"
        "(852) 9123-4567"  -> "+85291234567"
        "0085291234567"    -> "+85291234567"
        "+852 9123 4567"   -> "+85291234567"

    Never raises. Empty or digit-less input yields "".
    """
    s = (raw or "").strip()
    if not s:
        return ""

    if s.startswith("00"):
        s = f"+{s[2:]}"

    digits = _NON_DIGIT.sub("", s)
    if not digits:
        return ""

    if not s.startswith("+") and len(digits) == _local_length(local_length):
        digits = f"{_home_code(country_code)}{digits}"

    return _format_e164(digits)


def phone_variants(
    raw: Optional[str],
    country_code: Optional[str] = None,
    local_length: Optional[int] = None
) -> List[str]:
    """
    Search-query strings for a CRM free-text lookup.

    CRMs store phones in whatever shape the form submitted, so the lookup
    tries the canonical form, the same without "+", and the bare digits
    (plus "<code><digits>" for local-format input). Order is preserved.
    """
    canonical = normalize_phone(raw, country_code, local_length)
    digits = _NON_DIGIT.sub("", raw or "")

    candidates = [canonical]
    if canonical.startswith("+"):
        candidates.append(canonical[1:])
    if len(digits) == _local_length(local_length):
        candidates.extend([f"{_home_code(country_code)}{digits}", digits])
    else:
        candidates.append(digits)

    seen = set()
    variants = []
    for candidate in candidates:
        if candidate and candidate not in seen:
            seen.add(candidate)
            variants.append(candidate)
    return variants


def digits_only(raw: Optional[str]) -> str:
    return _NON_DIGIT.sub("", raw or "")


def mask_phone(raw: Optional[str]) -> str:
    """For log lines: keep the last 4 digits only."""
    digits = digits_only(raw)
    if len(digits) <= 4:
        return "***"
    return f"***{digits[-4:]}"
