"""
Health check and service information endpoints.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_atlas_service
from api.models import HealthResponse
from atlas import __version__
from atlas.application.services import AtlasService

router = APIRouter()


@router.get("/", response_model=Dict[str, Any])
async def root():
    """Root endpoint - API information"""
    return {
        "name": "Peer Atlas API",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/healthz",
            "state": "/api/state",
            "refresh": "/api/refresh",
        },
    }


@router.get("/healthz", response_model=HealthResponse)
async def health_check(service: AtlasService = Depends(get_atlas_service)):
    """
    200 when a build is being served, 202 while the first build is still
    running, 503 when the last refresh failed.
    """
    state = service.get_state()
    build = state.data
    if state.error:
        status, code = "error", 503
    elif build is None:
        status, code = "starting", 202
    else:
        status, code = "ok", 200

    body = HealthResponse(
        status=status,
        uptime=round(service.uptime, 3),
        nodes=len(build.nodes) if build else 0,
        edges=len(build.edges) if build else 0,
        lastBuild=build.completed_at if build else None,
        error=state.error,
    )
    return JSONResponse(status_code=code, content=body.model_dump())
