"""
Webinar Routes
Occurrence listing for session pickers
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, Response

from app.core.dependencies import get_join_service
from app.models.schemas import SessionView
from app.services.join import JoinService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webinars", tags=["webinars"])


@router.get("/{webinar_id}/sessions", response_model=List[SessionView])
async def list_webinar_sessions(
    webinar_id: str,
    response: Response,
    service: JoinService = Depends(get_join_service)
):
    """All occurrences of a webinar, oldest first, with display labels."""
    response.headers["Cache-Control"] = "no-store"
    return await service.sessions(webinar_id)
