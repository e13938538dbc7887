"""
Order Lifecycle

    pending -> preparing -> ready -> in_delivery -> delivered
                                  \\----------------^
    any non-terminal status -> cancelled

Staff of the order's branch may move an order to any later status
(skipping is allowed) or cancel it. ``in_delivery`` exists only for
delivery orders. Customers may only cancel, and only while the order
is still pending. ``delivered`` and ``cancelled`` are terminal.
"""

import enum
from typing import Union

from tastybites.core.errors import InvalidTransitionError, OrderLockedError
from tastybites.enums import OrderStatus, OrderType


class Actor(str, enum.Enum):
    CUSTOMER = "customer"
    STAFF = "staff"


FORWARD_ORDER = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.IN_DELIVERY,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
ACTIVE_STATUSES = tuple(s for s in OrderStatus if s not in TERMINAL_STATUSES)

_RANK = {status: rank for rank, status in enumerate(FORWARD_ORDER)}


def is_terminal(status: Union[OrderStatus, str]) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def status_applies_to(status: Union[OrderStatus, str], order_type: Union[OrderType, str]) -> bool:
    """Whether ``status`` is meaningful for an order of ``order_type``."""
    if OrderStatus(status) == OrderStatus.IN_DELIVERY:
        return OrderType(order_type) == OrderType.DELIVERY
    return True


def allowed_transitions(
    order_type: Union[OrderType, str],
    status: Union[OrderStatus, str],
    actor: Union[Actor, str],
) -> list[OrderStatus]:
    """
    Statuses ``actor`` may move an order to, in workflow order.

    This is the list a view offers as options; ``ensure_transition``
    applies the same rules to writes.
    """
    order_type = OrderType(order_type)
    status = OrderStatus(status)
    actor = Actor(actor)

    if status in TERMINAL_STATUSES:
        return []

    if actor == Actor.CUSTOMER:
        return [OrderStatus.CANCELLED] if status == OrderStatus.PENDING else []

    targets = [
        candidate
        for candidate in FORWARD_ORDER
        if _RANK[candidate] > _RANK[status] and status_applies_to(candidate, order_type)
    ]
    targets.append(OrderStatus.CANCELLED)
    return targets


def ensure_transition(
    order_type: Union[OrderType, str],
    current: Union[OrderStatus, str],
    target: Union[OrderStatus, str],
    actor: Union[Actor, str],
) -> OrderStatus:
    """
    Validate a status change and return the target status.

    Raises:
        InvalidTransitionError: the lifecycle does not allow it
        OrderLockedError: a customer touching an order that left pending
    """
    order_type = OrderType(order_type)
    current = OrderStatus(current)
    target = OrderStatus(target)
    actor = Actor(actor)

    if not status_applies_to(target, order_type):
        raise InvalidTransitionError(
            f"'{target.value}' is only available for delivery orders"
        )
    if actor == Actor.CUSTOMER and current != OrderStatus.PENDING:
        raise OrderLockedError(
            f"Order is already {current.value} and can no longer be changed"
        )
    if target == current:
        raise InvalidTransitionError(f"Order is already {current.value}")
    if target not in allowed_transitions(order_type, current, actor):
        raise InvalidTransitionError(
            f"Cannot move order from {current.value} to {target.value}"
        )
    return target


def ensure_customer_can_modify(status: Union[OrderStatus, str]) -> None:
    """
    Raises:
        OrderLockedError: the order is no longer pending
    """
    status = OrderStatus(status)
    if status != OrderStatus.PENDING:
        raise OrderLockedError(
            f"Order is already {status.value} and can no longer be changed"
        )
