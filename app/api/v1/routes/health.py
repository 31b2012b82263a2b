"""
Health Check Routes
System status and diagnostics
"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException

from app.core.config import settings
from app.models.schemas import DebugResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Settings attribute -> environment variable reported by /api/debug
REQUIRED_ENV = {
    "zoom_account_id": "ZOOM_ACCOUNT_ID",
    "zoom_client_id": "ZOOM_CLIENT_ID",
    "zoom_client_secret": "ZOOM_CLIENT_SECRET",
    "ghl_api_key": "GHL_API_KEY",
    "ghl_base_url": "GHL_BASE_URL",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/health", response_model=HealthResponse)
@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(ok=True, now=_now_iso())


@router.get("/api/debug", response_model=DebugResponse)
async def debug_env():
    """
    Report which credentials are configured (never their values).

    SECURITY: Not available in production
    """
    if settings.environment == "production":
        raise HTTPException(status_code=404, detail="Not Found")

    env = {
        name: "SET" if getattr(settings, attr, None) else "MISSING"
        for attr, name in REQUIRED_ENV.items()
    }
    return DebugResponse(env=env, now=_now_iso())
