"""Service liveness endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from blogapi import __version__
from blogapi.core.responses import api_response

router = APIRouter()


class HealthResponse(BaseModel):
    """Schema returned by the /health endpoint."""

    status: Literal["healthy", "draining"]
    timestamp: datetime
    version: str = Field(default=__version__)


@router.get("/", summary="Root", tags=["health"])
async def root(request: Request) -> JSONResponse:
    return api_response(request, status.HTTP_200_OK, "Server is running...")


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    tags=["health"],
)
async def health(request: Request) -> HealthResponse:
    """Report whether the process is serving or already draining."""
    monitor = getattr(request.app.state, "fault_monitor", None)
    draining = monitor is not None and monitor.state in ("draining", "stopped")
    return HealthResponse(
        status="draining" if draining else "healthy",
        timestamp=datetime.now(tz=timezone.utc),
        version=__version__,
    )
