"""
Join Resolution Errors
Failure conditions surfaced to callers of the join service.

NoContact and a recovered registration conflict are NOT errors:
the first proceeds on the guest path, the second returns the existing link.
"""
from typing import Optional


class JoinResolutionError(Exception):
    """Base class. `status_code` is the HTTP status the API layer responds with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(JoinResolutionError):
    """Missing or malformed phone / session token."""

    status_code = 400


class NoFutureOccurrenceError(JoinResolutionError):
    """The webinar has no occurrence starting after now."""

    status_code = 404

    def __init__(self, webinar_id: str):
        super().__init__("No future occurrence found for this webinar")
        self.webinar_id = webinar_id


class ProviderRateLimitedError(JoinResolutionError):
    """Zoom kept rate limiting even after the reuse lookup."""

    status_code = 429


class ProviderUnavailableError(JoinResolutionError):
    """Any other Zoom failure (unexpected status, malformed response)."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ProviderAuthError(ProviderUnavailableError):
    """Zoom token exchange failed. Never retried."""


class CRMError(Exception):
    """GHL lookup failed on every host. Swallowed by the contact resolver."""


class RetryAfterError(Exception):
    """An HTTP 429 carrying the server's Retry-After hint (seconds)."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after
