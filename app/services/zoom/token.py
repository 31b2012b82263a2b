"""
Zoom Server-to-Server OAuth
Exchanges account credentials for a short-lived bearer token and reuses it
until shortly before it expires.
"""
import logging
import time
from typing import Callable, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ProviderAuthError

logger = logging.getLogger(__name__)

# Refresh this many seconds before Zoom says the token expires
EXPIRY_SKEW_SECONDS = 60


class AccessTokenCache:
    """
    Holds the current Zoom access token.

    Correctness never depends on the cache: a missing or expired token just
    means one more exchange. Exchange failures are not retried.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        account_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        oauth_url: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.http_client = http_client
        self.account_id = account_id or settings.zoom_account_id
        self.client_id = client_id or settings.zoom_client_id
        self.client_secret = client_secret or settings.zoom_client_secret
        self.oauth_url = oauth_url or settings.zoom_oauth_url
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0

    async def get_token(self) -> str:
        """
        Return a valid bearer token, exchanging credentials if needed.

        Raises:
            ProviderAuthError: If credentials are missing or Zoom refuses them
        """
        if self._token and self._clock() < self._expires_at:
            return self._token

        token, expires_in = await self._exchange()
        self._token = token
        self._expires_at = self._clock() + max(0, expires_in - EXPIRY_SKEW_SECONDS)
        return token

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0

    async def _exchange(self):
        if not (self.account_id and self.client_id and self.client_secret):
            raise ProviderAuthError("Missing Zoom env vars")

        params = {"grant_type": "account_credentials", "account_id": self.account_id}

        try:
            response = await self.http_client.post(
                self.oauth_url,
                params=params,
                auth=httpx.BasicAuth(self.client_id, self.client_secret)
            )
        except httpx.HTTPError as e:
            logger.error(f"Zoom token request failed: {e}")
            raise ProviderAuthError(f"Zoom token request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400 or not data.get("access_token"):
            reason = data.get("reason") or data.get("error") or response.status_code
            logger.error(f"Zoom token error: {response.status_code} - {response.text[:200]}")
            raise ProviderAuthError(f"Zoom token error: {reason}")

        logger.debug("Zoom access token refreshed")
        return data["access_token"], float(data.get("expires_in") or 0)
