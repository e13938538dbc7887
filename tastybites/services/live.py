"""
Live Views

Turns a change-feed subscription into a stream of fresh view states:
the first value is the current state, and every event on a watched
relation triggers a full re-fetch. The staleness window is the time
between the change and the end of that re-fetch.
"""

import logging
from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional, TypeVar

from tastybites.services.realtime.base import ORDER_RELATIONS, BaseChangeFeed, ChangeEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def watch_view(
    feed: BaseChangeFeed,
    fetch: Callable[[], Awaitable[T]],
    relations: Iterable[str] = ORDER_RELATIONS,
    is_relevant: Optional[Callable[[ChangeEvent], bool]] = None,
) -> AsyncIterator[T]:
    """
    Yield ``fetch()`` now and again after each relevant change event.

    Args:
        feed: Change feed to subscribe to
        fetch: Re-issues the read query for the view
        relations: Relations whose changes invalidate the view
        is_relevant: Optional filter to skip events that cannot affect
            the view (e.g. another branch's orders)
    """
    async with feed.subscribe(relations) as subscription:
        yield await fetch()
        async for event in subscription:
            if is_relevant is not None and not is_relevant(event):
                continue
            logger.debug(f"{event.event_type} on {event.relation}, re-fetching view")
            yield await fetch()
