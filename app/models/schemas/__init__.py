"""
Pydantic Schemas
All request/response models for API endpoints
"""

# Health check schemas
from .health import HealthResponse, DebugResponse

# Join schemas
from .join import (
    RegisterRequest,
    RegisterResponse,
    ContactSummary,
    ZoomMappingPreview,
    PeekResponse,
    SessionView,
)

__all__ = [
    # Health
    "HealthResponse",
    "DebugResponse",
    # Join
    "RegisterRequest",
    "RegisterResponse",
    "ContactSummary",
    "ZoomMappingPreview",
    "PeekResponse",
    "SessionView",
]
