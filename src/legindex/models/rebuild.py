"""Rebuild state and report models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class RebuildState(StrEnum):
    """States of the rebuild state machine."""

    IDLE = "idle"
    CLEARING = "clearing"
    SCANNING_SESSION = "scanning_session"
    PAGING_WITHIN_SESSION = "paging_within_session"
    ADVANCE_SESSION = "advance_session"
    DONE = "done"


class RebuildStatus(StrEnum):
    COMPLETED = "completed"
    EMPTY_STORE = "empty_store"


class RebuildReport(BaseModel):
    """Summary of a finished rebuild."""

    status: RebuildStatus = Field(default=RebuildStatus.COMPLETED)
    sessions: list[int] = Field(default_factory=list, description="Session years visited, in order")
    batches: int = Field(default=0, description="Number of non-empty id batches processed")
    indexed: int = Field(default=0, description="Bills upserted into the index")
    deleted: int = Field(default=0, description="Ineligible bills removed from the index")
    skipped: list[str] = Field(default_factory=list, description="Listed ids the store could not return")
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
