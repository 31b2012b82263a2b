"""
CORS Configuration
Cross-Origin Resource Sharing settings for the join pages

The join form and redirect links are embedded on third-party landing pages
(funnels, email campaigns), so any origin may call the API. No cookies or
credentials are involved.
"""
import logging
from fastapi.middleware.cors import CORSMiddleware as FastAPICORSMiddleware

logger = logging.getLogger(__name__)


def get_cors_middleware():
    """
    Returns configured CORS middleware.

    - All origins ("*"), so credentials must stay disabled
    - Only the methods/headers the join endpoints use
    """
    logger.info("🌐 CORS allowing all origins (*) for join endpoints")

    return FastAPICORSMiddleware, {
        "allow_origins": ["*"],
        "allow_credentials": False,  # Must be False when using "*"
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization"],
        "max_age": 600,  # Cache preflight requests for 10 minutes
    }
