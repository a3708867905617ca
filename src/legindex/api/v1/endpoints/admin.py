"""Index administration — Rebuild and clear the bill index."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from legindex.api.deps import get_engine
from legindex.core.engine import BillIndexEngine
from legindex.core.errors import RebuildInProgressError
from legindex.models.events import RebuildRequested, SearchIndex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/index")


@router.post(
    "/rebuild",
    status_code=202,
    summary="Rebuild Bill Index",
    description="Request a full rebuild of the bill index from the bill store. Runs in the background.",
)
async def rebuild_index(engine: BillIndexEngine = Depends(get_engine)) -> dict[str, str]:
    engine.channel.publish(RebuildRequested(indices={SearchIndex.BILL}))
    return {"status": "accepted"}


@router.delete(
    "",
    status_code=204,
    summary="Clear Bill Index",
    description="Delete and recreate the bill index, leaving it empty.",
    responses={409: {"description": "A rebuild is running"}},
)
async def clear_index(engine: BillIndexEngine = Depends(get_engine)) -> Response:
    try:
        await engine.clear_index()
    except RebuildInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return Response(status_code=204)
