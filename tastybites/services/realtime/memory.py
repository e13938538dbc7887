"""
In-Memory Change Feed

Fans events out to subscribers of the same process through asyncio
queues. Used in development mode and by the test suite; a single API
process sees its own writes immediately.

Author: Your Name
Version: 1.0.0
"""

import asyncio
import logging
from typing import Iterable

from tastybites.services.realtime.base import (
    ORDER_RELATIONS,
    BaseChangeFeed,
    ChangeEvent,
    Subscription,
)

logger = logging.getLogger(__name__)


class MemorySubscription(Subscription):

    def __init__(self, feed: "MemoryChangeFeed", relations: Iterable[str]):
        super().__init__(relations)
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue()

    async def open(self) -> None:
        self._feed._subscribers.add(self)
        logger.debug(f"Memory subscription opened on {sorted(self.relations)}")

    async def close(self) -> None:
        self._feed._subscribers.discard(self)
        logger.debug(f"Memory subscription closed on {sorted(self.relations)}")

    def deliver(self, event: ChangeEvent) -> None:
        if event.relation in self.relations:
            self._queue.put_nowait(event)

    async def next_event(self) -> ChangeEvent:
        return await self._queue.get()

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class MemoryChangeFeed(BaseChangeFeed):
    """
    Process-local change feed.

    Example:
        >>> feed = MemoryChangeFeed()
        >>> async with feed.subscribe({"orders"}) as sub:
        ...     await feed.publish(ChangeEvent(relation="orders", event_type="INSERT"))
        ...     event = await sub.next_event()
    """

    def __init__(self):
        self._subscribers: set[MemorySubscription] = set()
        logger.info("MemoryChangeFeed initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: ChangeEvent) -> None:
        for subscriber in list(self._subscribers):
            subscriber.deliver(event)
        logger.debug(
            f"Published {event.event_type} on {event.relation} "
            f"to {len(self._subscribers)} subscriber(s)"
        )

    def subscribe(self, relations: Iterable[str] = ORDER_RELATIONS) -> MemorySubscription:
        return MemorySubscription(self, relations)

    async def health_check(self) -> bool:
        """In-process feed is always reachable."""
        return True
