import uuid

import anyio
import pytest

from tastybites.services.live import watch_view
from tastybites.services.realtime import ChangeEvent, MemoryChangeFeed
from tastybites.services.realtime.redis_feed import channel_for


def test_change_event_json_round_trip():
    event = ChangeEvent.for_row("orders", "UPDATE", uuid.uuid4(), uuid.uuid4(), uuid.uuid4())
    assert ChangeEvent.from_json(event.to_json().encode()) == event


def test_channel_per_relation():
    assert channel_for("tastybites:changes", "orders") == "tastybites:changes:orders"


@pytest.mark.anyio
async def test_subscription_filters_by_relation():
    feed = MemoryChangeFeed()
    async with feed.subscribe({"orders"}) as subscription:
        await feed.publish(ChangeEvent(relation="menu", event_type="UPDATE"))
        await feed.publish(ChangeEvent(relation="orders", event_type="INSERT"))

        event = await subscription.next_event()
        assert event.relation == "orders"
        assert subscription.pending == 0


@pytest.mark.anyio
async def test_unsubscribe_on_exit():
    feed = MemoryChangeFeed()
    async with feed.subscribe():
        assert feed.subscriber_count == 1
    assert feed.subscriber_count == 0

    await feed.publish(ChangeEvent(relation="orders", event_type="INSERT"))


@pytest.mark.anyio
async def test_every_subscriber_receives_event():
    feed = MemoryChangeFeed()
    async with feed.subscribe() as first, feed.subscribe() as second:
        await feed.publish(ChangeEvent(relation="ordered_items", event_type="INSERT"))
        assert (await first.next_event()).relation == "ordered_items"
        assert (await second.next_event()).relation == "ordered_items"


@pytest.mark.anyio
async def test_watch_view_refetches_after_relevant_events():
    feed = MemoryChangeFeed()
    fetches = []

    async def fetch():
        fetches.append(len(fetches))
        return len(fetches)

    branch = str(uuid.uuid4())
    views = watch_view(feed, fetch, is_relevant=lambda event: event.branch_id == branch)

    with anyio.fail_after(2):
        assert await views.__anext__() == 1

        await feed.publish(ChangeEvent(relation="orders", event_type="INSERT", branch_id=str(uuid.uuid4())))
        await feed.publish(ChangeEvent(relation="orders", event_type="INSERT", branch_id=branch))
        assert await views.__anext__() == 2

    await views.aclose()
    assert fetches == [0, 1]
    assert feed.subscriber_count == 0
