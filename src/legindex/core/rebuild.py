"""Rebuild controller — full, paginated re-population of the bill index.

A rebuild clears the index, then walks every session from the store's
earliest active session through the current calendar session. Within a
session, bill ids are fetched in fixed-size pages until an empty page comes
back; each page is loaded from the store and pushed through the incremental
updater's batch path, so the eligibility rule is the same one live updates use.

The rebuild is monolithic: nothing is checkpointed, a failure leaves the index
as the completed batches left it, and a started rebuild is never cancelled.
An ``asyncio.Lock`` keeps rebuilds and clears from interleaving; a request that
finds the lock taken fails fast with ``RebuildInProgressError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime

from legindex.adapters.base.adapter import IndexClient
from legindex.config.settings import IndexingSettings
from legindex.core.errors import RebuildInProgressError
from legindex.core.updater import IncrementalUpdater
from legindex.models.bill import Bill, BillId
from legindex.models.cursor import PageCursor
from legindex.models.rebuild import RebuildReport, RebuildState, RebuildStatus
from legindex.models.session import SessionYear
from legindex.store.base import BillNotFoundError, BillStore

logger = logging.getLogger(__name__)


class RebuildController:
    """Orchestrates index clears and full rebuilds.

    Args:
        client: Index backend.
        store: Canonical bill store.
        updater: Incremental updater used for each batch.
        settings: Indexing settings (rebuild batch size).
        today: Clock returning the current date; the rebuild stops after the
            session containing it.
    """

    def __init__(
        self,
        client: IndexClient,
        store: BillStore,
        updater: IncrementalUpdater,
        settings: IndexingSettings,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._store = store
        self._updater = updater
        self._settings = settings
        self._today = today
        self._lock = asyncio.Lock()
        self.state = RebuildState.IDLE

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def _exclusive(self, operation: str) -> AsyncIterator[None]:
        if self._lock.locked():
            raise RebuildInProgressError(f"Cannot {operation} the index while a rebuild or clear is running.")
        async with self._lock:
            yield

    async def clear_index(self) -> None:
        """Delete the index and recreate it empty."""
        async with self._exclusive("clear"):
            await self._clear()

    async def _clear(self) -> None:
        # A write landing between the drop and the create would recreate the
        # index with dynamic mappings.
        async with self._updater.writes_paused():
            await self._client.delete_index()
            await self._client.create_index()
        logger.info("Cleared the bill index")

    async def rebuild(self) -> RebuildReport:
        """Clear the index and re-index every eligible bill in the store.

        Returns:
            A report of the sessions visited and the actions taken.

        Raises:
            RebuildInProgressError: If another rebuild or clear holds the lock.
        """
        async with self._exclusive("rebuild"):
            try:
                return await self._rebuild()
            except Exception:
                self.state = RebuildState.IDLE
                raise

    async def _rebuild(self) -> RebuildReport:
        report = RebuildReport()

        self.state = RebuildState.CLEARING
        await self._clear()

        session_range = await self._store.active_session_range()
        if session_range is None:
            logger.info("Can't rebuild the bill search index because there are no bills!")
            self.state = RebuildState.DONE
            report.status = RebuildStatus.EMPTY_STORE
            report.finished_at = datetime.now(UTC)
            return report

        session = session_range[0]
        current_year = self._today().year
        while session.year <= current_year:
            self.state = RebuildState.SCANNING_SESSION
            report.sessions.append(session.year)
            logger.info("Rebuilding bill index for session %s", session)

            self.state = RebuildState.PAGING_WITHIN_SESSION
            async for bill_ids in self._id_batches(session):
                logger.info("Indexing %d bills starting from %s", len(bill_ids), bill_ids[0])
                bills, missing = await self._fetch_bills(bill_ids)
                result = await self._updater.apply_batch(bills)
                report.batches += 1
                report.indexed += result.indexed
                report.deleted += result.deleted
                report.skipped.extend(missing)

            self.state = RebuildState.ADVANCE_SESSION
            session = session.next()

        self.state = RebuildState.DONE
        report.finished_at = datetime.now(UTC)
        logger.info(
            "Rebuilt bill index: %d sessions, %d indexed, %d deleted, %d skipped",
            len(report.sessions),
            report.indexed,
            report.deleted,
            len(report.skipped),
        )
        return report

    async def _id_batches(self, session: SessionYear) -> AsyncIterator[list[BillId]]:
        """Yield pages of bill ids for a session until the store returns an empty page."""
        cursor = PageCursor(limit=self._settings.rebuild_batch_size)
        while bill_ids := await self._store.get_bill_ids(session, cursor):
            yield bill_ids
            cursor = cursor.next()

    async def _fetch_bills(self, bill_ids: list[BillId]) -> tuple[list[Bill], list[str]]:
        bills: list[Bill] = []
        missing: list[str] = []
        for bill_id in bill_ids:
            try:
                bills.append(await self._store.get_bill(bill_id))
            except BillNotFoundError:
                logger.warning("Bill %s is listed for its session but could not be retrieved, skipping", bill_id)
                missing.append(str(bill_id))
        return bills, missing
