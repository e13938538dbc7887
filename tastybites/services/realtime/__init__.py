"""
Change Feed Factory

Returns the in-memory or Redis change feed based on ENV_MODE.

Author: Your Name
Version: 1.0.0
"""

import logging
from functools import lru_cache

from tastybites.core.config import get_settings
from tastybites.services.realtime.base import (
    ORDER_RELATIONS,
    BaseChangeFeed,
    ChangeEvent,
    Subscription,
)
from tastybites.services.realtime.memory import MemoryChangeFeed
from tastybites.services.realtime.redis_feed import RedisChangeFeed

logger = logging.getLogger(__name__)


@lru_cache()
def get_change_feed() -> BaseChangeFeed:
    """Get the configured change feed."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Change Feed: Using MemoryChangeFeed (development mode)")
        return MemoryChangeFeed()
    else:
        logger.info(f"Change Feed: Using RedisChangeFeed ({settings.env_mode.value} mode)")
        return RedisChangeFeed()


def reset_change_feed() -> None:
    """Clear the cached feed instance."""
    get_change_feed.cache_clear()


__all__ = [
    "get_change_feed",
    "reset_change_feed",
    "ORDER_RELATIONS",
    "BaseChangeFeed",
    "ChangeEvent",
    "Subscription",
    "MemoryChangeFeed",
    "RedisChangeFeed",
]
