"""Base index client — Abstract interface for all bill index backends.

Every index backend must implement this interface to integrate with LegIndex.
The client is responsible for:
  1. Managing the index lifecycle (create / delete)
  2. Writing entries (single and bulk upserts, deletes)
  3. Executing translated queries with paging
  4. Reporting health status
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field

from legindex.models.bill import BillIndexEntry
from legindex.models.cursor import PageCursor


class AdapterHealth(BaseModel):
    """Health status of an index backend."""

    status: str = Field(description="Health status: healthy, degraded, unhealthy")
    latency_ms: int = Field(default=0, description="Latency of last health check in ms")
    last_check: str | None = Field(default=None, description="ISO timestamp of last health check")
    message: str | None = Field(default=None, description="Additional health message")


class RawHits(BaseModel):
    """Matches returned by a backend query before conversion to bill ids."""

    ids: list[str] = Field(default_factory=list, description="Matching entry ids in rank order")
    total: int = Field(default=0, description="Total number of matching entries")
    took_ms: int = Field(default=0, description="Backend query execution time in ms")


class IndexClient(ABC):
    """Abstract base class for bill index backends.

    Writes must be idempotent: upserting an entry twice leaves exactly one
    entry per id, and deleting an absent entry is not an error.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique backend name (e.g., 'opensearch')."""

    @abstractmethod
    async def initialize(self) -> None:
        """Open connections. Called once during application startup."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connections and release resources."""

    @abstractmethod
    async def index_exists(self) -> bool:
        """Whether the bill index currently exists."""

    @abstractmethod
    async def create_index(self) -> None:
        """Create an empty bill index."""

    @abstractmethod
    async def delete_index(self) -> None:
        """Delete the bill index. A missing index is not an error."""

    @abstractmethod
    async def upsert(self, entry: BillIndexEntry) -> None:
        """Insert or replace a single entry."""

    @abstractmethod
    async def upsert_batch(self, entries: Sequence[BillIndexEntry]) -> None:
        """Insert or replace many entries in one request."""

    @abstractmethod
    async def delete(self, bill_id: str) -> bool:
        """Remove an entry.

        Returns:
            True if an entry was removed, False if it was already absent.
        """

    @abstractmethod
    async def query(
        self,
        query: dict[str, Any],
        post_filter: dict[str, Any] | None,
        sort: list[dict[str, Any]],
        cursor: PageCursor,
    ) -> RawHits:
        """Execute a translated query and return one page of matches.

        Raises:
            QueryParseError: If the backend rejects the query syntax.
            QueryError: For any other query failure.
            ConnectionError: If the backend is unreachable.
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of entries currently in the index."""

    @abstractmethod
    async def health_check(self) -> AdapterHealth:
        """Check the health of the index backend."""
