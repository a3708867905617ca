"""Index events — notifications delivered through the event channel."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from legindex.models.bill import Bill


class SearchIndex(StrEnum):
    """Search indices owned by the wider system. ``ALL`` targets every index."""

    BILL = "bill"
    AGENDA = "agenda"
    CALENDAR = "calendar"
    LAW = "law"
    TRANSCRIPT = "transcript"
    ALL = "all"


class IndexEvent(BaseModel):
    """Base class for channel events."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class BillChanged(IndexEvent):
    """A single bill was created or modified in the store."""

    bill: Bill | None = None


class BillsChanged(IndexEvent):
    """A batch of bills was created or modified in the store."""

    bills: list[Bill] | None = None


class RebuildRequested(IndexEvent):
    """Request to rebuild one or more search indices from the store."""

    indices: set[SearchIndex] = Field(default_factory=lambda: {SearchIndex.ALL})

    def affects(self, index: SearchIndex) -> bool:
        return index in self.indices or SearchIndex.ALL in self.indices
