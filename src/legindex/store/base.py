"""Bill store interface — read access to the canonical bill records.

The store is the system of record; LegIndex only reads from it, to rebuild
the index. Writes to the store happen elsewhere and reach the index through
the event channel.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from legindex.models.bill import Bill, BillId
from legindex.models.cursor import PageCursor
from legindex.models.session import SessionYear


class StoreError(Exception):
    """Raised when the bill store cannot be read."""


class BillNotFoundError(StoreError):
    """Raised when a bill id listed by the store cannot be retrieved."""

    def __init__(self, bill_id: BillId | str) -> None:
        super().__init__(f"Bill {bill_id} not found")
        self.bill_id = str(bill_id)


class BillStore(ABC):
    """Read-only view over the canonical bill store."""

    @abstractmethod
    async def active_session_range(self) -> tuple[SessionYear, SessionYear] | None:
        """Inclusive range of sessions that contain bills, or None if the store is empty."""

    @abstractmethod
    async def get_bill_ids(self, session: SessionYear, cursor: PageCursor) -> list[BillId]:
        """Ordered ids of the bills in ``session``, at most ``cursor.limit`` of them."""

    @abstractmethod
    async def get_bill(self, bill_id: BillId) -> Bill:
        """Fetch a full bill.

        Raises:
            BillNotFoundError: If the store has no bill with this id.
        """

    async def initialize(self) -> None:
        """Open connections, if any."""

    async def shutdown(self) -> None:
        """Release connections, if any."""
