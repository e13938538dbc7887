"""
Redis Change Feed

Hosted implementation of the change feed on Redis pub/sub. Used when
ENV_MODE=production or ENV_MODE=staging, where several API workers must
see each other's writes.

Publishing goes through the ``publish_change_event`` Celery task, which
retries on Redis errors; subscribers listen on one channel per relation
(``<prefix>:<relation>``) with the asyncio Redis client.

Author: Your Name
Version: 1.0.0
"""

import asyncio
import logging
from typing import Iterable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from tastybites.core.config import get_settings
from tastybites.core.errors import ServiceUnavailableError
from tastybites.services.realtime.base import (
    ORDER_RELATIONS,
    BaseChangeFeed,
    ChangeEvent,
    Subscription,
)

logger = logging.getLogger(__name__)


def channel_for(prefix: str, relation: str) -> str:
    return f"{prefix}:{relation}"


class RedisSubscription(Subscription):

    def __init__(self, feed: "RedisChangeFeed", relations: Iterable[str]):
        super().__init__(relations)
        self._feed = feed
        self._pubsub = None

    async def open(self) -> None:
        channels = [channel_for(self._feed.prefix, r) for r in sorted(self.relations)]
        try:
            self._pubsub = self._feed.client.pubsub(ignore_subscribe_messages=True)
            await self._pubsub.subscribe(*channels)
        except RedisError as e:
            logger.error(f"Redis subscribe failed: {e}")
            raise ServiceUnavailableError("Live updates are unavailable", "realtime") from e
        logger.debug(f"Redis subscription opened on {channels}")

    async def close(self) -> None:
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None

    async def next_event(self) -> ChangeEvent:
        while True:
            try:
                message = await self._pubsub.get_message(timeout=1.0)
            except RedisError as e:
                logger.error(f"Redis subscription lost: {e}")
                raise ServiceUnavailableError("Live updates are unavailable", "realtime") from e
            if message is None or message.get("type") != "message":
                continue
            try:
                return ChangeEvent.from_json(message["data"])
            except (ValueError, KeyError) as e:
                logger.warning(f"Dropping malformed change event: {e}")


class RedisChangeFeed(BaseChangeFeed):
    """
    Change feed shared by every API worker through Redis.

    Attributes:
        prefix: Channel name prefix
    """

    def __init__(self, client: Optional[aioredis.Redis] = None, prefix: Optional[str] = None):
        settings = get_settings()
        self.client = client or aioredis.from_url(settings.redis_url)
        self.prefix = prefix or settings.realtime_channel_prefix
        logger.info(f"RedisChangeFeed initialized (prefix={self.prefix})")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def publish(self, event: ChangeEvent) -> None:
        """Hand the event to the worker; the broker call blocks, so it runs off-loop."""
        from tastybites.tasks import publish_change_event

        try:
            await asyncio.to_thread(publish_change_event.delay, event.to_dict())
        except Exception as e:
            # The write already committed; a lost notification only delays a re-fetch.
            logger.error(f"Could not enqueue change event for {event.relation}: {e}")

    def subscribe(self, relations: Iterable[str] = ORDER_RELATIONS) -> RedisSubscription:
        return RedisSubscription(self, relations)

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
