"""
Health Check Schemas
Models for system health and debug endpoints
"""
from typing import Dict
from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool
    now: str


class DebugResponse(BaseModel):
    """
    Which required environment values are present.
    Values are reported as "SET" / "MISSING", never echoed.
    """
    env: Dict[str, str]
    now: str
