"""
Celery Tasks
Background tasks for fanning change events out to live subscribers.
"""

import logging
import time

import redis

from tastybites.celery_worker import celery_app, REDIS_URL
from tastybites.core.config import get_settings
from tastybites.services.realtime.base import ChangeEvent
from tastybites.services.realtime.redis_feed import channel_for

logger = logging.getLogger(__name__)

_redis_client = None


def _get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(REDIS_URL)
    return _redis_client


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=1,
    autoretry_for=(redis.RedisError,),
    retry_backoff=True
)
def publish_change_event(self, event_data: dict) -> dict:
    """
    Publish one change event on its relation's pub/sub channel.

    Retried on Redis errors, so a subscriber may see the same event
    twice; consumers only re-fetch, which makes duplicates harmless.

    Args:
        event_data: ChangeEvent.to_dict() payload

    Returns:
        dict: Channel and number of receivers
    """
    task_id = self.request.id
    event = ChangeEvent.from_dict(event_data)
    channel = channel_for(get_settings().realtime_channel_prefix, event.relation)

    start_time = time.time()
    receivers = _get_redis().publish(channel, event.to_json())
    elapsed = round(time.time() - start_time, 3)

    logger.info(
        f"Task {task_id}: {event.event_type} {event.relation} {event.row_id} "
        f"-> {channel} ({receivers} receiver(s), {elapsed}s)"
    )
    return {
        'channel': channel,
        'receivers': receivers,
        'task_id': task_id,
    }

