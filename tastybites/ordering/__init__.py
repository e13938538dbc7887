"""
Ordering core: cart consolidation, pricing and the order lifecycle.

Pure logic with no I/O; the store and the API call into it.
"""

from tastybites.ordering.cart import Cart, CartLine
from tastybites.ordering.lifecycle import (
    Actor,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    allowed_transitions,
    ensure_customer_can_modify,
    ensure_transition,
    is_terminal,
)
from tastybites.ordering.pricing import PriceBreakdown, price_cart, validate_checkout

__all__ = [
    "Cart",
    "CartLine",
    "Actor",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "allowed_transitions",
    "ensure_customer_can_modify",
    "ensure_transition",
    "is_terminal",
    "PriceBreakdown",
    "price_cart",
    "validate_checkout",
]
