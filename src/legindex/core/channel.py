"""Event channel — typed, in-process publish/subscribe for index events.

The channel is an explicit object passed to whoever produces or consumes
events; there is no global bus. Each subscription owns an ``asyncio.Queue``
and a dedicated consumer task, so:

  - ``publish()`` never waits for handlers (producers are not blocked by
    index writes),
  - events are handled in FIFO order per subscriber, with no ordering across
    subscribers,
  - a failing handler is logged and the subscription keeps consuming.

Consumer tasks exist only between ``start()`` and ``stop()``; events
published before ``start()`` wait in the queues.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from legindex.core.errors import ChannelClosedError
from legindex.models.events import IndexEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[IndexEvent], Awaitable[None]]


@dataclass(eq=False)
class Subscription:
    """A registered handler and the queue feeding it."""

    name: str
    handler: EventHandler
    queue: asyncio.Queue[IndexEvent] = field(default_factory=asyncio.Queue)
    task: asyncio.Task | None = None
    processed_count: int = 0
    failed_count: int = 0


class EventChannel:
    """Fan-out channel delivering every published event to every subscriber.

    Example:
        >>> channel = EventChannel()
        >>> sub = channel.subscribe(engine.handle_event, name="bill-index")
        >>> channel.start()
        >>> channel.publish(BillChanged(bill=bill))
        >>> await channel.stop()
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._running = False
        self._closed = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def subscribe(self, handler: EventHandler, name: str | None = None) -> Subscription:
        """Register a handler; it receives every event published from now on."""
        if self._closed:
            raise ChannelClosedError("Cannot subscribe to a stopped channel.")
        subscription = Subscription(name=name or getattr(handler, "__qualname__", repr(handler)), handler=handler)
        self._subscriptions.append(subscription)
        if self._running:
            self._start_consumer(subscription)
        logger.info("Subscribed '%s' to event channel", subscription.name)
        return subscription

    async def unsubscribe(self, subscription: Subscription, drain: bool = True) -> None:
        """Stop delivering events to a subscription.

        Args:
            subscription: The subscription returned by ``subscribe()``.
            drain: Handle events already queued for it before stopping.
        """
        if subscription not in self._subscriptions:
            return
        self._subscriptions.remove(subscription)
        if drain and subscription.task is not None:
            await subscription.queue.join()
        await self._stop_consumer(subscription)
        logger.info("Unsubscribed '%s' from event channel", subscription.name)

    def publish(self, event: IndexEvent) -> None:
        """Enqueue an event for every subscriber without waiting for handlers."""
        if self._closed:
            raise ChannelClosedError(f"Cannot publish {type(event).__name__} to a stopped channel.")
        for subscription in self._subscriptions:
            subscription.queue.put_nowait(event)
        logger.debug("Published %s to %d subscribers", type(event).__name__, len(self._subscriptions))

    def start(self) -> None:
        """Start one consumer task per subscription."""
        if self._closed:
            raise ChannelClosedError("A stopped channel cannot be restarted.")
        if self._running:
            return
        self._running = True
        for subscription in self._subscriptions:
            self._start_consumer(subscription)

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await asyncio.gather(*(s.queue.join() for s in self._subscriptions if s.task is not None))

    async def stop(self, drain: bool = True) -> None:
        """Stop all consumers. Queued events are handled first when ``drain`` is set."""
        if drain and self._running:
            await self.join()
        self._running = False
        self._closed = True
        for subscription in self._subscriptions:
            await self._stop_consumer(subscription)

    def _start_consumer(self, subscription: Subscription) -> None:
        subscription.task = asyncio.create_task(self._consume(subscription), name=f"consumer-{subscription.name}")

    @staticmethod
    async def _stop_consumer(subscription: Subscription) -> None:
        task, subscription.task = subscription.task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @staticmethod
    async def _consume(subscription: Subscription) -> None:
        while True:
            event = await subscription.queue.get()
            try:
                await subscription.handler(event)
                subscription.processed_count += 1
            except Exception:
                subscription.failed_count += 1
                logger.exception("Handler '%s' failed on %s", subscription.name, type(event).__name__)
            finally:
                subscription.queue.task_done()
