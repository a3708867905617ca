"""Search models — query shapes, translated backend queries, and outcomes."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

from legindex.models.bill import BillId
from legindex.models.cursor import PageCursor
from legindex.models.session import SessionYear


class QueryKind(StrEnum):
    """The three supported search call shapes."""

    TEXT = "text"
    SESSION = "session"
    TEXT_AND_SESSION = "text_and_session"


class SearchQuery(BaseModel):
    """A caller's search intent before translation."""

    kind: QueryKind
    text: str | None = Field(default=None, description="Free-text query string")
    session: SessionYear | None = Field(default=None, description="Session to scope results to")


class NativeQuery(BaseModel):
    """Backend-native query produced by the translator."""

    query: dict[str, Any] = Field(description="Backend query clause")
    post_filter: dict[str, Any] | None = Field(default=None, description="Filter applied after scoring")
    sort: list[dict[str, Any]] = Field(default_factory=list, description="Backend sort clauses")


class SearchResultPage(BaseModel):
    """One page of matching bill ids."""

    outcome: Literal["ok"] = "ok"
    ids: list[BillId] = Field(default_factory=list, description="Matching bill ids, in rank order")
    total: int = Field(default=0, ge=0, description="Total number of matches")
    cursor: PageCursor = Field(default=PageCursor.TEN, description="Cursor that produced this page")

    @property
    def has_more(self) -> bool:
        return self.cursor.end < self.total


class QueryParseFailure(BaseModel):
    """The free-text query (or sort) could not be parsed. User-correctable."""

    outcome: Literal["parse_failure"] = "parse_failure"
    query: str = Field(default="", description="The offending query string")
    message: str = Field(description="Parser diagnostic")


class BackendFailure(BaseModel):
    """The index backend was unavailable or failed unexpectedly."""

    outcome: Literal["backend_failure"] = "backend_failure"
    message: str = Field(description="Backend diagnostic")


SearchOutcome = SearchResultPage | QueryParseFailure | BackendFailure
