"""Search endpoint — Bill search by free text, by session, or both."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from legindex.api.deps import get_engine
from legindex.core.engine import BillIndexEngine
from legindex.models.cursor import PageCursor
from legindex.models.search import BackendFailure, QueryParseFailure
from legindex.models.session import SessionYear

logger = logging.getLogger(__name__)

router = APIRouter()


class SearchResultResponse(BaseModel):
    """One page of bill search results."""

    ids: list[str] = Field(description="Matching bill ids, e.g. 'S1234-2021'")
    total: int = Field(description="Total number of matches")
    limit: int = Field(description="Page size")
    offset: int = Field(description="Zero-based offset of the first result")


@router.get(
    "/bills/search",
    response_model=SearchResultResponse,
    summary="Search Bills",
    description=(
        "Search the bill index.\n\n"
        "- `term` only: free-text search across all sessions\n"
        "- `session` only: every bill in the session\n"
        "- both: free-text search scoped to the session\n\n"
        "`term` uses query-string syntax (phrases, wildcards, AND/OR/NOT). "
        "`sort` takes `field:ASC|DESC` clauses separated by commas."
    ),
    responses={
        400: {"description": "Malformed query or sort string"},
        422: {"description": "Neither term nor session given, or invalid paging parameters"},
        503: {"description": "Search backend unavailable or failing"},
    },
)
async def search_bills(
    term: str | None = Query(default=None, description="Free-text query"),
    session: int | None = Query(default=None, ge=1, description="Session year"),
    sort: str | None = Query(default=None, description="Sort clauses, e.g. 'session:DESC,title:ASC'"),
    limit: int = Query(default=10, ge=1, le=1000, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Zero-based offset"),
    engine: BillIndexEngine = Depends(get_engine),
) -> SearchResultResponse:
    """Execute a bill search and return one page of ids."""
    cursor = PageCursor(limit=limit, offset=offset)
    if term is not None and session is not None:
        outcome = await engine.search_by_text_and_session(term, SessionYear(year=session), sort, cursor)
    elif term is not None:
        outcome = await engine.search_by_text(term, sort, cursor)
    elif session is not None:
        outcome = await engine.search_by_session(SessionYear(year=session), sort, cursor)
    else:
        raise HTTPException(status_code=422, detail="Provide a search term, a session, or both.")

    if isinstance(outcome, QueryParseFailure):
        raise HTTPException(status_code=400, detail=f"Invalid query string: {outcome.message}")
    if isinstance(outcome, BackendFailure):
        raise HTTPException(status_code=503, detail=f"Search backend failure: {outcome.message}")

    return SearchResultResponse(
        ids=[str(bill_id) for bill_id in outcome.ids],
        total=outcome.total,
        limit=outcome.cursor.limit,
        offset=outcome.cursor.offset,
    )
