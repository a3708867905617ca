"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Iterable

import pytest

from legindex.adapters.memory.adapter import InMemoryIndexClient
from legindex.config.settings import Settings
from legindex.models.bill import Bill, BillAmendment, BillId
from legindex.models.cursor import PageCursor
from legindex.models.session import SessionYear
from legindex.store.base import BillNotFoundError, BillStore


def make_bill(
    print_no: str = "S1234",
    session: int = 2021,
    published: bool = True,
    title: str = "An act to amend the tax law",
    summary: str = "",
    full_text: str = "",
    sponsor: str | None = None,
) -> Bill:
    """Build a bill whose base print is (or is not) published."""
    return Bill(
        bill_id=BillId(print_no=print_no, session=SessionYear(year=session)),
        title=title,
        summary=summary,
        sponsor=sponsor,
        amendments=[BillAmendment(version="", published=published, full_text=full_text)],
    )


class FakeBillStore(BillStore):
    """In-memory bill store that records every id page it serves.

    Ids listed in ``missing`` are returned by ``get_bill_ids`` but cannot be
    fetched, like a store whose listing and records disagree.
    """

    def __init__(self, bills: Iterable[Bill] = (), missing: Iterable[BillId] = ()) -> None:
        self.bills: dict[BillId, Bill] = {b.bill_id: b for b in bills}
        self.missing: set[BillId] = set(missing)
        self.id_fetches: list[tuple[int, PageCursor, int]] = []

    def put(self, bill: Bill) -> None:
        self.bills[bill.bill_id] = bill

    async def active_session_range(self) -> tuple[SessionYear, SessionYear] | None:
        sessions = {bill_id.session for bill_id in [*self.bills, *self.missing]}
        if not sessions:
            return None
        return min(sessions), max(sessions)

    async def get_bill_ids(self, session: SessionYear, cursor: PageCursor) -> list[BillId]:
        ids = sorted((i for i in [*self.bills, *self.missing] if i.session == session), key=str)
        page = cursor.window(ids)
        self.id_fetches.append((session.year, cursor, len(page)))
        return page

    async def get_bill(self, bill_id: BillId) -> Bill:
        if bill_id in self.missing or bill_id not in self.bills:
            raise BillNotFoundError(bill_id)
        return self.bills[bill_id]


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance backed by the in-memory index."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        index={"backend": "memory"},
    )


@pytest.fixture
async def index() -> InMemoryIndexClient:
    """An initialized in-memory index with the bill index created."""
    client = InMemoryIndexClient()
    await client.initialize()
    await client.create_index()
    return client


@pytest.fixture
def store() -> FakeBillStore:
    return FakeBillStore()
