"""Incremental updater — mirrors bill changes into the search index."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from legindex.adapters.base.adapter import IndexClient
from legindex.config.settings import IndexingSettings
from legindex.core.eligibility import is_bill_indexable
from legindex.models.bill import Bill, BillIndexEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateResult:
    """Counts of index actions taken for one update."""

    indexed: int = 0
    deleted: int = 0


class IncrementalUpdater:
    """Applies the eligibility rule to changed bills and writes the outcome.

    Eligible bills are upserted, ineligible ones are deleted. Every write is
    idempotent, so replaying an update (or applying a stale one followed by
    the current one) converges on the latest applied state.

    When indexing is administratively disabled both operations return
    without contacting the index client. While writes are paused (the index
    is being dropped and recreated) both operations wait for the pause to end.
    """

    def __init__(self, client: IndexClient, settings: IndexingSettings) -> None:
        self._client = client
        self._settings = settings
        self._writes_open = asyncio.Event()
        self._writes_open.set()
        self._drained = asyncio.Event()
        self._drained.set()
        self._in_flight = 0

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    @asynccontextmanager
    async def writes_paused(self) -> AsyncIterator[None]:
        """Hold back new writes and wait for in-flight ones to finish."""
        self._writes_open.clear()
        try:
            await self._drained.wait()
            yield
        finally:
            self._writes_open.set()

    @asynccontextmanager
    async def _writing(self) -> AsyncIterator[None]:
        await self._writes_open.wait()
        self._in_flight += 1
        self._drained.clear()
        try:
            yield
        finally:
            self._in_flight -= 1
            if not self._in_flight:
                self._drained.set()

    async def apply(self, bill: Bill | None) -> UpdateResult:
        """Index or remove a single bill."""
        if not self.enabled or bill is None:
            return UpdateResult()
        async with self._writing():
            if is_bill_indexable(bill):
                logger.info("Indexing bill %s", bill.bill_id)
                await self._client.upsert(BillIndexEntry.from_bill(bill))
                return UpdateResult(indexed=1)
            logger.info("Deleting bill %s from index", bill.bill_id)
            await self._client.delete(str(bill.bill_id))
            return UpdateResult(deleted=1)

    async def apply_batch(self, bills: Iterable[Bill | None]) -> UpdateResult:
        """Index the eligible bills of a batch in one request and remove the rest.

        A bill that appears more than once is written in its last state.
        """
        if not self.enabled:
            return UpdateResult()
        latest = list({str(b.bill_id): b for b in bills if b is not None}.values())
        if not latest:
            return UpdateResult()

        indexable = [b for b in latest if is_bill_indexable(b)]
        unindexable = [b for b in latest if not is_bill_indexable(b)]

        async with self._writing():
            logger.info("Indexing %d valid bills", len(indexable))
            if indexable:
                await self._client.upsert_batch([BillIndexEntry.from_bill(b) for b in indexable])

            # Bills that no longer qualify must not linger in the index.
            for bill in unindexable:
                logger.info("Deleting bill %s from index", bill.bill_id)
                await self._client.delete(str(bill.bill_id))

        return UpdateResult(indexed=len(indexable), deleted=len(unindexable))
