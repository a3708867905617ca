"""API v1 Router — Search, event intake, index administration, and health endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from legindex.api.v1.endpoints.admin import router as admin_router
from legindex.api.v1.endpoints.events import router as events_router
from legindex.api.v1.endpoints.health import router as health_router
from legindex.api.v1.endpoints.search import router as search_router

router = APIRouter(tags=["v1"])
router.include_router(search_router)
router.include_router(events_router)
router.include_router(admin_router)
router.include_router(health_router)
