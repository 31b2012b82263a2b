"""
Circuit Breakers and Retry Logic
Honors server-supplied Retry-After hints on rate-limited external calls (GHL)
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    retry_if_exception_type,
    before_sleep_log,
)
from tenacity.wait import wait_base

from app.core.exceptions import RetryAfterError

logger = logging.getLogger(__name__)


# ============================================================================
# RETRY-AFTER WAIT STRATEGY
# ============================================================================

class wait_retry_after(wait_base):
    """
    Wait for as long as the last RetryAfterError asked for.

    Falls back to `default` when the server sent no usable hint and never
    waits longer than `maximum`.
    """

    def __init__(self, default: float = 1.0, maximum: float = 10.0):
        self.default = default
        self.maximum = maximum

    def __call__(self, retry_state) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        hint = getattr(exc, "retry_after", None)
        delay = self.default if hint is None else hint
        return max(0.0, min(float(delay), self.maximum))


# ============================================================================
# RATE-LIMITED CALL
# ============================================================================

async def call_with_retry_after(
    func: Callable[..., Awaitable[Any]],
    *args,
    max_attempts: int = 2,
    default_wait: float = 1.0,
    max_wait: float = 10.0,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    **kwargs
) -> Any:
    """
    Call `func`, retrying on RetryAfterError.

    Strategy:
    - Max 2 attempts (one retry)
    - Single sleep driven by the Retry-After header
    - Any other exception propagates immediately

    Usage:
        data = await call_with_retry_after(fetch_page, url, max_wait=5)
    """
    retrying = AsyncRetrying(
        retry=retry_if_exception_type(RetryAfterError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_retry_after(default=default_wait, maximum=max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
        sleep=sleep or asyncio.sleep,
    )

    result = None
    async for attempt in retrying:
        with attempt:
            result = await func(*args, **kwargs)
    return result


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Retry-After in seconds, or None when absent/unparseable (HTTP-date form is ignored)."""
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
