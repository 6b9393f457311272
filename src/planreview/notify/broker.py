"""Publish/subscribe fan-out of change events.

Every subscriber owns a bounded queue. Publishing never waits: an event that does not fit in
a subscriber's queue is dropped for that subscriber only. There is no replay, so a subscriber
that falls behind must re-fetch full state.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from planreview.events import ChangeEvent
from planreview.logging import get_logger

logger = get_logger(__name__)


class Subscription:
    """A subscriber's view of the broker; iterate it to receive events."""

    def __init__(self, max_queue_size: int) -> None:
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=max_queue_size)
        self.dropped = 0

    def offer(self, event: ChangeEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self) -> ChangeEvent:
        return await self._queue.get()

    def get_nowait(self) -> ChangeEvent | None:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self.get()


class EventBroker:
    """Broadcasts change events to all current subscribers."""

    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def add_subscriber(self) -> Subscription:
        sub = Subscription(self._max_queue_size)
        self._subscribers.add(sub)
        logger.info("Subscriber connected (%d total)", len(self._subscribers))
        return sub

    def remove_subscriber(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            logger.info("Subscriber disconnected (%d total)", len(self._subscribers))

    @contextlib.asynccontextmanager
    async def subscribe(self) -> AsyncIterator[Subscription]:
        """Register a subscriber for the duration of the ``async with`` block."""

        sub = self.add_subscriber()
        try:
            yield sub
        finally:
            self.remove_subscriber(sub)

    def publish(self, event: ChangeEvent) -> int:
        """Offer an event to every subscriber without blocking.

        Returns:
            Number of subscribers the event was delivered to.
        """

        delivered = 0
        for sub in list(self._subscribers):
            if sub.offer(event):
                delivered += 1
            else:
                logger.debug("Dropped %s for a slow subscriber", event.type.value)
        return delivered
