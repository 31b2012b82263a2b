"""
Dependency Injection
Provides reusable dependencies for FastAPI routes

DEPENDENCIES:
- Shared HTTP client (Zoom + GHL calls)
- Zoom client (with its access token cache)
- GHL client (with its custom field cache)
- Join service
"""
import logging
from typing import Optional
import httpx

from app.core.config import settings
from app.services.crm import GHLClient
from app.services.join import JoinService
from app.services.zoom import AccessTokenCache, ZoomClient

logger = logging.getLogger(__name__)

# ============================================================================
# GLOBAL CLIENTS (initialized once, reused across requests)
# ============================================================================

_http_client: Optional[httpx.AsyncClient] = None
_zoom_client: Optional[ZoomClient] = None
_ghl_client: Optional[GHLClient] = None


# ============================================================================
# INITIALIZATION (called on app startup)
# ============================================================================

async def initialize_clients():
    """
    Initialize all global clients on app startup.

    Called from main.py lifespan event.
    """
    global _http_client, _zoom_client, _ghl_client

    logger.info("Initializing global clients...")

    _http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    _zoom_client = ZoomClient(_http_client, token_cache=AccessTokenCache(_http_client))
    _ghl_client = GHLClient(_http_client)

    logger.info(f"✅ Zoom client initialized ({_zoom_client.base_url})")
    logger.info(f"✅ GHL client initialized ({', '.join(_ghl_client.base_urls)})")


async def shutdown_clients():
    """
    Shutdown all global clients on app shutdown.

    Called from main.py lifespan event.
    """
    global _http_client, _zoom_client, _ghl_client

    logger.info("Shutting down global clients...")

    if _http_client:
        try:
            await _http_client.aclose()
            logger.info("✅ HTTP client closed")
        except Exception as e:
            logger.error(f"Error closing HTTP client: {e}")

    _http_client = None
    _zoom_client = None
    _ghl_client = None

    logger.info("✅ All clients shutdown complete")


# ============================================================================
# DEPENDENCY FUNCTIONS (injected into routes)
# ============================================================================

def get_zoom_client() -> ZoomClient:
    """
    Get Zoom client for dependency injection.

    Returns:
        ZoomClient sharing one token cache across requests
    """
    if _zoom_client is None:
        logger.error("Zoom client not initialized")
        raise RuntimeError("Zoom client not initialized. Call initialize_clients() first.")

    return _zoom_client


def get_ghl_client() -> GHLClient:
    """
    Get GHL client for dependency injection.

    Returns:
        GHLClient sharing one custom field cache across requests
    """
    if _ghl_client is None:
        logger.error("GHL client not initialized")
        raise RuntimeError("GHL client not initialized. Call initialize_clients() first.")

    return _ghl_client


def get_join_service() -> JoinService:
    """
    Get the join service.

    Usage:
        @router.post("/register")
        async def register(service: JoinService = Depends(get_join_service)):
            resolution = await service.resolve_join(session, phone)
            return {"join_url": resolution.join_url}
    """
    return JoinService(get_zoom_client(), get_ghl_client())
