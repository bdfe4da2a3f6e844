"""
Pydantic models for API responses.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(..., description="ok, starting or error")
    uptime: float = Field(..., description="Seconds since the service started")
    nodes: int = 0
    edges: int = 0
    lastBuild: Optional[str] = Field(default=None, description="Completion time of the current build")
    error: Optional[str] = None


class RefreshResponse(BaseModel):
    accepted: bool
    message: str


class AtlasStateResponse(BaseModel):
    building: bool
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
