"""
Webinar Join Resolver
=====================
Version: 1.0.0

FastAPI application entry point.

Turns "phone number + session token" into a Zoom webinar join link:
- Picks the webinar occurrence (explicit or nearest upcoming)
- Looks the caller up in GoHighLevel by phone (guest fallback)
- Creates or reuses the Zoom registrant

Architecture:
- app/core/: Configuration, dependencies, errors, retries
- app/middleware/: Error handling, logging, CORS, rate limiting
- app/models/: Pydantic schemas
- app/services/: Phone normalization, CRM, identity, Zoom, join flow
- app/api/v1/routes/: API endpoints
"""
import sys
import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

# Startup error handling
try:
    # Import core components
    from app.core.config import settings
    from app.core.dependencies import initialize_clients, shutdown_clients
    from app.core.exceptions import JoinResolutionError

    # Import middleware
    from app.middleware.error_handler import (
        ErrorHandlerMiddleware,
        join_error_handler,
        rate_limit_handler,
        validation_error_handler,
    )
    from app.middleware.logging import RequestLoggingMiddleware
    from app.middleware.cors import get_cors_middleware

    # Import routes
    from app.api.v1.routes.health import router as health_router
    from app.api.v1.routes.join import router as join_router
    from app.api.v1.routes.webinars import router as webinars_router

except Exception as e:
    print(f"🚨 FATAL STARTUP ERROR: {e}", file=sys.stderr)
    print(f"Traceback:\n{traceback.format_exc()}", file=sys.stderr)
    sys.exit(1)

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.environment == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# ============================================================================
# SENTRY ERROR TRACKING
# ============================================================================

if settings.sentry_dsn:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,  # 10% of requests for performance monitoring
            send_default_pii=False,  # phone numbers and emails stay out of Sentry
            integrations=[
                FastApiIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
            ]
        )
        logger.info("✅ Sentry error tracking initialized")
    except Exception as e:
        logger.warning(f"⚠️  Failed to initialize Sentry: {e}")
else:
    logger.info("ℹ️  Sentry not configured (SENTRY_DSN not set)")

# ============================================================================
# LIFECYCLE MANAGEMENT
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    # Startup
    logger.info("=" * 80)
    logger.info("Starting Webinar Join Resolver")
    logger.info("=" * 80)
    logger.info(f"Version: 1.0.0")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Port: {settings.port}")
    logger.info(f"Debug: {settings.debug}")

    await initialize_clients()

    logger.info("=" * 80)
    logger.info("✅ Webinar Join Resolver started successfully")
    logger.info("=" * 80)

    yield

    # Shutdown
    logger.info("Shutting down Webinar Join Resolver...")
    await shutdown_clients()
    logger.info("✅ Shutdown complete")


# ============================================================================
# APP INITIALIZATION
# ============================================================================

app = FastAPI(
    title="Webinar Join Resolver API",
    description="Phone + session token -> Zoom webinar join link",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

app.add_exception_handler(JoinResolutionError, join_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# ============================================================================
# RATE LIMITING
# ============================================================================

from slowapi.errors import RateLimitExceeded
from app.middleware.rate_limit import limiter

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
logger.info("✅ Rate limiting enabled")

# ============================================================================
# MIDDLEWARE (order matters!)
# ============================================================================

# CORS
cors_middleware, cors_config = get_cors_middleware()
app.add_middleware(cors_middleware, **cors_config)

# Request logging
app.add_middleware(RequestLoggingMiddleware)

# Global error handler (must be last)
app.add_middleware(ErrorHandlerMiddleware)

# ============================================================================
# ROUTES
# ============================================================================

app.include_router(health_router)
app.include_router(join_router)
app.include_router(webinars_router)

logger.info("✅ All routes registered")

# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
