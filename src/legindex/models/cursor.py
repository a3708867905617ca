"""Page cursor — immutable paging token shared by store scans and index queries."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class PageCursor(BaseModel):
    """A fixed-size window over an ordered result set.

    The cursor never mutates; ``next()`` returns a new cursor advanced by one
    batch, so iteration over a bounded set always terminates.

    Attributes:
        limit: Batch size.
        offset: Zero-based position of the first item in the batch.
    """

    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=10, ge=1, description="Maximum number of items per page")
    offset: int = Field(default=0, ge=0, description="Zero-based offset of the first item")

    TEN: ClassVar[PageCursor]
    THOUSAND: ClassVar[PageCursor]

    def next(self) -> PageCursor:
        """Cursor for the following batch."""
        return PageCursor(limit=self.limit, offset=self.offset + self.limit)

    @property
    def end(self) -> int:
        """Exclusive upper bound of this window."""
        return self.offset + self.limit

    def window(self, items: list) -> list:
        """Slice ``items`` to this cursor's window."""
        return items[self.offset : self.end]


PageCursor.TEN = PageCursor(limit=10)
PageCursor.THOUSAND = PageCursor(limit=1000)
