"""
Change Feed Abstract Base Class

Defines the interface for the realtime collaborator. A subscription is
a message-passing channel: entering it registers interest in a set of
relations, and iterating it yields ``ChangeEvent`` values until the
subscriber leaves. Delivery is fire-and-forget, at-least-once and
unordered with respect to anything else; a consumer's only contract is
"on event, re-issue the read".

Usage:
    async with feed.subscribe({"orders"}) as subscription:
        async for event in subscription:
            orders = await refetch()

Author: Your Name
Version: 1.0.0
"""

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

ORDER_RELATIONS = frozenset({"orders", "ordered_items"})


@dataclass(frozen=True)
class ChangeEvent:
    """
    A row mutation on a watched relation.

    Attributes:
        relation: Table name (orders, ordered_items)
        event_type: INSERT, UPDATE or DELETE
        row_id: Primary key of the changed row
        branch_id: Branch the row belongs to, when known
        user_id: Owning customer, when known
        occurred_at: UTC timestamp of the publish
    """
    relation: str
    event_type: str
    row_id: Optional[str] = None
    branch_id: Optional[str] = None
    user_id: Optional[str] = None
    occurred_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "relation": self.relation,
            "event_type": self.event_type,
            "row_id": self.row_id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "occurred_at": self.occurred_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeEvent":
        return cls(
            relation=data["relation"],
            event_type=data["event_type"],
            row_id=data.get("row_id"),
            branch_id=data.get("branch_id"),
            user_id=data.get("user_id"),
            occurred_at=data.get("occurred_at") or datetime.now(timezone.utc).isoformat(),
        )

    @classmethod
    def from_json(cls, raw) -> "ChangeEvent":
        if isinstance(raw, bytes):
            raw = raw.decode()
        return cls.from_dict(json.loads(raw))

    @classmethod
    def for_row(
        cls,
        relation: str,
        event_type: str,
        row_id: Optional[uuid.UUID] = None,
        branch_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> "ChangeEvent":
        return cls(
            relation=relation,
            event_type=event_type,
            row_id=str(row_id) if row_id else None,
            branch_id=str(branch_id) if branch_id else None,
            user_id=str(user_id) if user_id else None,
        )


class Subscription(ABC):
    """
    An open channel of change events.

    Interest is registered on ``__aenter__``, so nothing published after
    entering is missed even if the consumer has not started iterating.
    """

    def __init__(self, relations: Iterable[str]):
        self.relations = frozenset(relations)

    @abstractmethod
    async def open(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def next_event(self) -> ChangeEvent:
        """Wait for the next event on a watched relation."""
        pass

    async def __aenter__(self) -> "Subscription":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.close()
        return False

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self.next_event()


class BaseChangeFeed(ABC):
    """Abstract base class for change feed providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., "memory", "redis")."""
        pass

    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        """Announce a row mutation to every matching subscriber."""
        pass

    @abstractmethod
    def subscribe(self, relations: Iterable[str] = ORDER_RELATIONS) -> Subscription:
        """Open a subscription to the given relations."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check feed connectivity."""
        pass
