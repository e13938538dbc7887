"""
Pricing Calculator

Derives subtotal, tax, delivery fee and total for a cart and an order
type, and validates a checkout before anything is written.

All amounts are ``Decimal`` quantized to cents with ROUND_HALF_UP. Tax
is rounded on its own before it is added, so the stored parts always
sum exactly to the stored total:

    {8.99 x2, 12.99 x1}, dine_in  -> 30.97 + 3.10          = 34.07
    same cart, delivery           -> 30.97 + 3.10 + 5.99   = 40.06
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, Union

from tastybites.core.errors import BusinessRuleError, ValidationError
from tastybites.enums import OrderType
from tastybites.ordering.cart import Cart, to_money

CENT = Decimal("0.01")
DEFAULT_TAX_RATE = Decimal("0.10")
DEFAULT_DELIVERY_FEE = Decimal("5.99")


def quantize(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    tip: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "delivery_fee": str(self.delivery_fee),
            "tip": str(self.tip),
            "total": str(self.total),
        }


def price_cart(
    cart: Cart,
    order_type: Union[OrderType, str],
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    delivery_fee: Decimal = DEFAULT_DELIVERY_FEE,
    tip: Any = Decimal("0"),
) -> PriceBreakdown:
    """
    Price a cart for the given fulfillment mode.

    Args:
        cart: Consolidated cart
        order_type: dine_in, takeaway or delivery
        tax_rate: Fraction applied to the subtotal
        delivery_fee: Flat fee charged on delivery orders only
        tip: Optional tip added to the total

    Returns:
        PriceBreakdown with every part rounded to cents
    """
    order_type = OrderType(order_type)

    subtotal = quantize(cart.total())
    tax = quantize(subtotal * to_money(tax_rate))
    fee = quantize(to_money(delivery_fee)) if order_type == OrderType.DELIVERY else quantize(Decimal("0"))
    tip = quantize(to_money(tip))
    if tip < 0:
        raise ValidationError("tip", "Tip cannot be negative")

    return PriceBreakdown(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=fee,
        tip=tip,
        total=subtotal + tax + fee + tip,
    )


def validate_checkout(
    cart: Cart,
    order_type: Union[OrderType, str],
    delivery_address: Optional[str],
    branch_id: Any,
) -> Optional[str]:
    """
    Reject a checkout that must not create an order.

    Returns:
        The stripped delivery address for delivery orders, else None

    Raises:
        BusinessRuleError: no branch selected, or the cart is empty
        ValidationError: delivery order without a usable address
    """
    order_type = OrderType(order_type)

    if not branch_id:
        raise BusinessRuleError("Please select a branch")
    if cart.is_empty:
        raise BusinessRuleError("Cart is empty")

    if order_type != OrderType.DELIVERY:
        return None

    address = (delivery_address or "").strip()
    if not address:
        raise ValidationError("delivery_address", "Please enter delivery address")
    return address
