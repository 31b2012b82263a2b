"""
Rate Limiting Middleware
Limits how often one client can hit the join endpoints, using slowapi

RATE LIMITS:
- Join (register/complete): settings.join_rate_limit per IP
- Other endpoints are not limited

Each join costs several Zoom/GHL calls and Zoom caps registrations per
registrant per day, so a looping client must not burn that quota.
"""
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from app.core.config import settings

logger = logging.getLogger(__name__)


def rate_limit_key_func(request: Request) -> str:
    """Key by client IP, honoring the first X-Forwarded-For hop behind a proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = get_remote_address(request)
    logger.debug(f"Rate limit key: ip={ip}")
    return f"ip:{ip}"


limiter = Limiter(
    key_func=rate_limit_key_func,
    storage_uri="memory://",  # In-memory storage (single instance)
)

join_rate_limit = settings.join_rate_limit
