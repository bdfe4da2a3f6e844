"""
Atlas state and refresh endpoints.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_atlas_service
from api.models import AtlasStateResponse, RefreshResponse
from atlas.application.services import AtlasService

router = APIRouter(prefix="/api", tags=["atlas"])
logger = logging.getLogger(__name__)


@router.get("/state", response_model=AtlasStateResponse)
async def get_state(service: AtlasService = Depends(get_atlas_service)):
    """Current build (if any), the building flag and the last refresh error."""
    return service.get_state().to_dict()


@router.post("/refresh", response_model=RefreshResponse, status_code=202)
async def refresh(service: AtlasService = Depends(get_atlas_service)):
    if not service.request_refresh():
        raise HTTPException(status_code=409, detail="A build is already in progress")
    logger.info("Manual refresh scheduled")
    return RefreshResponse(accepted=True, message="Refresh scheduled")
