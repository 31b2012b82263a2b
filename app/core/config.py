"""
Unified Configuration
All environment variables and settings in one place

ARCHITECTURE:
- Zoom Server-to-Server OAuth app (account credentials grant)
- GoHighLevel (GHL) API key for contact lookup
- No database: all state lives in Zoom and GHL

SECURITY:
- All secrets loaded from environment variables
- No hardcoded credentials
- Missing credentials are reported at startup and fail at call time
"""
from typing import Optional
import logging
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings.
    Validates all environment variables at startup.
    """

    # ============================================================================
    # SERVER
    # ============================================================================

    environment: str = Field(default="production", description="Environment: development/staging/production")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    http_timeout: float = Field(default=30.0, description="Timeout (seconds) for outbound Zoom/GHL calls")

    # ============================================================================
    # ZOOM (Server-to-Server OAuth)
    # ============================================================================

    zoom_account_id: Optional[str] = Field(default=None, description="Zoom account ID")
    zoom_client_id: Optional[str] = Field(default=None, description="Zoom S2S OAuth client ID")
    zoom_client_secret: Optional[str] = Field(default=None, description="Zoom S2S OAuth client secret")
    zoom_api_base_url: str = Field(default="https://api.zoom.us", description="Zoom REST API base URL")
    zoom_oauth_url: str = Field(default="https://zoom.us/oauth/token", description="Zoom OAuth token endpoint")
    session_label_timezone: str = Field(default="UTC", description="IANA timezone for session labels")

    # ============================================================================
    # GOHIGHLEVEL (CRM)
    # ============================================================================

    ghl_api_key: Optional[str] = Field(default=None, description="GHL API key (Bearer)")
    ghl_base_url: str = Field(default="https://rest.gohighlevel.com", description="Primary GHL API host")
    ghl_fallback_base_url: str = Field(default="https://services.leadconnectorhq.com", description="Fallback GHL API host")
    crm_retry_after_max: float = Field(default=10.0, description="Upper bound (seconds) for a GHL Retry-After sleep")
    display_name_field_key: str = Field(default="contact.zoom_display_name", description="GHL custom field key holding the Zoom display name")

    # ============================================================================
    # IDENTITY RESOLUTION
    # ============================================================================

    default_country_code: str = Field(default="852", description="Country code applied to bare local-format numbers")
    local_number_length: int = Field(default=8, description="Digit length of a bare local-format number")
    always_alias_email: bool = Field(default=False, description="Always register with a synthetic alias email")
    alias_email_domain: str = Field(default="example.com", description="Domain of synthetic alias emails")
    guest_label: str = Field(default="Guest", description="Display name used when nothing better is known")

    # ============================================================================
    # PRODUCTION INFRASTRUCTURE
    # ============================================================================

    # Error tracking (Sentry)
    sentry_dsn: Optional[str] = Field(default=None, description="Sentry DSN for error tracking")

    # Per-IP limit on the join endpoints (slowapi syntax)
    join_rate_limit: str = Field(default="30/minute", description="Rate limit for register/complete endpoints")

    @model_validator(mode='after')
    def validate_settings(self):
        """
        Validate critical settings at startup.

        Missing credentials only produce warnings so the health endpoints
        still come up; the affected calls fail when they are attempted.
        """
        if self.environment == "production":
            if self.debug:
                logger.warning("⚠️  DEBUG MODE ENABLED IN PRODUCTION! This is insecure.")

            if not self.sentry_dsn:
                logger.warning("⚠️  Sentry not configured in production. Error tracking disabled.")

        if not (self.zoom_account_id and self.zoom_client_id and self.zoom_client_secret):
            logger.warning("⚠️  Zoom credentials incomplete. Registration will fail.")

        if not self.ghl_api_key:
            logger.warning("⚠️  GHL_API_KEY not set. Every caller will be treated as a guest.")

        logger.info("=" * 80)
        logger.info("Webinar Join Resolver Configuration Loaded")
        logger.info("=" * 80)
        logger.info(f"Environment: {self.environment}")
        logger.info(f"Debug: {self.debug}")
        logger.info(f"Zoom: {'✅ Configured' if self.zoom_client_id else '❌ Not configured'}")
        logger.info(f"GHL: {'✅ Configured' if self.ghl_api_key else '❌ Not configured'} ({self.ghl_base_url})")
        logger.info(f"Home country code: +{self.default_country_code}")
        logger.info(f"Alias email: {'always' if self.always_alias_email else 'fallback only'}")
        logger.info(f"Sentry: {'✅ Configured' if self.sentry_dsn else '❌ Not configured'}")
        logger.info("=" * 80)

        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
