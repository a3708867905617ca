"""Health check endpoint — Service and bill index status."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from legindex import __version__
from legindex.api.deps import get_engine
from legindex.core.engine import BillIndexEngine, IndexStatus

router = APIRouter()


class HealthResponse(BaseModel):
    """System health check response."""

    status: str = Field(description="Service status (e.g. 'healthy')")
    version: str = Field(description="LegIndex server version")
    service: str = Field(description="Service name ('legindex')")
    index: IndexStatus = Field(description="Bill index status")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="System Health Check",
    description="Returns service health, version, and the bill index backend status and size.",
)
async def health_check(engine: BillIndexEngine = Depends(get_engine)) -> HealthResponse:
    index_status = await engine.index_status()
    return HealthResponse(
        status="healthy" if index_status.health.status != "unhealthy" else "degraded",
        version=__version__,
        service="legindex",
        index=index_status,
    )
