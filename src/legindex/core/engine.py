"""LegIndex Engine — Keeps the bill search index in step with the bill store.

The engine wires the collaborators together and owns their lifecycle:

  Store change → [EventChannel] → handle_event → [IncrementalUpdater] → IndexClient
  Rebuild request → [RebuildController] → BillStore scan → [IncrementalUpdater] → IndexClient
  Search call → [BillSearchService] → IndexClient

Rebuild requests arriving as events run as background tasks so the event
consumer keeps applying incremental updates meanwhile. The model is eventual
consistency: an update racing a rebuild may or may not be reflected in the
rebuild's output, but the next event for that bill re-asserts its state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import date

from pydantic import BaseModel, Field

from legindex.adapters import create_index_client
from legindex.adapters.base.adapter import AdapterHealth, IndexClient
from legindex.adapters.base.exceptions import AdapterError
from legindex.config.settings import Settings
from legindex.core.channel import EventChannel, Subscription
from legindex.core.errors import RebuildInProgressError
from legindex.core.rebuild import RebuildController
from legindex.core.search import BillSearchService
from legindex.core.updater import IncrementalUpdater, UpdateResult
from legindex.models.bill import Bill
from legindex.models.cursor import PageCursor
from legindex.models.events import BillChanged, BillsChanged, IndexEvent, RebuildRequested, SearchIndex
from legindex.models.rebuild import RebuildReport, RebuildState
from legindex.models.search import SearchOutcome
from legindex.models.session import SessionYear
from legindex.store.base import BillStore
from legindex.store.http import HttpBillStore

logger = logging.getLogger(__name__)


class IndexStatus(BaseModel):
    """Snapshot of the bill index for health reporting."""

    backend: str
    indexing_enabled: bool
    document_count: int | None = Field(default=None, description="None when the backend could not be counted")
    rebuild_state: RebuildState
    health: AdapterHealth


class BillIndexEngine:
    """Index synchronization engine for bills.

    Attributes:
        settings: Application configuration.
        client: Index backend.
        store: Canonical bill store.
        channel: Event channel the engine consumes from.
        updater: Incremental updater.
        rebuilder: Rebuild controller.
        search: Search facade.
    """

    def __init__(
        self,
        settings: Settings,
        client: IndexClient | None = None,
        store: BillStore | None = None,
        channel: EventChannel | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings
        self.client = client or create_index_client(settings.index)
        self.store = store or HttpBillStore(
            settings.store.base_url,
            api_key=settings.store.api_key,
            timeout=settings.store.timeout,
        )
        self._owns_channel = channel is None
        self.channel = channel or EventChannel()
        self.updater = IncrementalUpdater(self.client, settings.indexing)
        self.rebuilder = RebuildController(self.client, self.store, self.updater, settings.indexing, today=today)
        self.search = BillSearchService(self.client, settings.indexing)
        self._subscription: Subscription | None = None
        self._rebuild_task: asyncio.Task[RebuildReport | None] | None = None

    async def initialize(self) -> None:
        """Connect to the backends and make sure the bill index exists."""
        await self.client.initialize()
        await self.store.initialize()
        if not await self.client.index_exists():
            logger.info("Bill index is missing, creating it")
            await self.client.create_index()
        if not self.settings.indexing.enabled:
            logger.warning("Indexing is disabled; bill updates will not reach the index")
        logger.info("LegIndex engine initialized (backend: %s)", self.client.name)

    def start(self) -> None:
        """Subscribe to the event channel and start consuming."""
        if self._subscription is None:
            self._subscription = self.channel.subscribe(self.handle_event, name="bill-index")
        self.channel.start()

    async def shutdown(self) -> None:
        """Stop consuming events, wait for a running rebuild, close backends."""
        if self._subscription is not None:
            await self.channel.unsubscribe(self._subscription)
            self._subscription = None
        if self._owns_channel and self.channel.running:
            await self.channel.stop()
        if self._rebuild_task is not None and not self._rebuild_task.done():
            logger.info("Waiting for the running bill index rebuild to finish")
            await self._rebuild_task
        await self.store.shutdown()
        await self.client.shutdown()
        logger.info("LegIndex engine shut down")

    # ── Search ───────────────────────────────────────────────────────────

    async def search_by_session(
        self, session: SessionYear, sort: str | None = None, cursor: PageCursor | None = None
    ) -> SearchOutcome:
        return await self.search.search_by_session(session, sort, cursor)

    async def search_by_text(self, text: str, sort: str | None = None, cursor: PageCursor | None = None) -> SearchOutcome:
        return await self.search.search_by_text(text, sort, cursor)

    async def search_by_text_and_session(
        self, text: str, session: SessionYear, sort: str | None = None, cursor: PageCursor | None = None
    ) -> SearchOutcome:
        return await self.search.search_by_text_and_session(text, session, sort, cursor)

    # ── Index maintenance ────────────────────────────────────────────────

    async def update_index(self, bills: Bill | Iterable[Bill] | None) -> UpdateResult:
        """Sync one bill or a collection of bills into the index."""
        if bills is None or isinstance(bills, Bill):
            return await self.updater.apply(bills)
        return await self.updater.apply_batch(bills)

    async def clear_index(self) -> None:
        """Delete and recreate the bill index."""
        await self.rebuilder.clear_index()

    async def rebuild_index(self) -> RebuildReport:
        """Rebuild the bill index from the store, in the caller's task."""
        return await self.rebuilder.rebuild()

    def schedule_rebuild(self) -> asyncio.Task[RebuildReport | None] | None:
        """Start a rebuild in the background.

        Returns:
            The rebuild task, or None if a rebuild is already running.
        """
        if self.rebuilder.running or (self._rebuild_task is not None and not self._rebuild_task.done()):
            logger.warning("Bill index rebuild already in progress, ignoring request")
            return None
        self._rebuild_task = asyncio.create_task(self._run_rebuild(), name="bill-index-rebuild")
        return self._rebuild_task

    async def _run_rebuild(self) -> RebuildReport | None:
        try:
            return await self.rebuild_index()
        except RebuildInProgressError as e:
            logger.warning("%s", e)
        except Exception:
            logger.exception("Bill index rebuild failed")
        return None

    # ── Events ───────────────────────────────────────────────────────────

    async def handle_event(self, event: IndexEvent) -> None:
        """Dispatch a channel event to the matching index operation."""
        if isinstance(event, BillChanged):
            if event.bill is not None:
                await self.update_index(event.bill)
        elif isinstance(event, BillsChanged):
            if event.bills is not None:
                await self.update_index(event.bills)
        elif isinstance(event, RebuildRequested):
            if event.affects(SearchIndex.BILL):
                logger.info("Handling bill re-index event!")
                self.schedule_rebuild()
        else:
            logger.debug("Ignoring unsupported event %s", type(event).__name__)

    # ── Status ───────────────────────────────────────────────────────────

    async def index_status(self) -> IndexStatus:
        health = await self.client.health_check()
        try:
            count: int | None = await self.client.count()
        except AdapterError:
            logger.warning("Could not count bill index entries", exc_info=True)
            count = None
        return IndexStatus(
            backend=self.client.name,
            indexing_enabled=self.settings.indexing.enabled,
            document_count=count,
            rebuild_state=self.rebuilder.state,
            health=health,
        )
