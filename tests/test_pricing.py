from decimal import Decimal

import pytest

from tastybites.core.errors import BusinessRuleError, ValidationError
from tastybites.enums import OrderType
from tastybites.ordering.cart import Cart
from tastybites.ordering.pricing import price_cart, quantize, validate_checkout

from conftest import menu_item


@pytest.fixture
def cart(spring_rolls, chicken_wings):
    cart = Cart(branch_id="downtown")
    cart.add_item(spring_rolls)
    cart.add_item(spring_rolls)
    cart.add_item(chicken_wings)
    return cart


def test_dine_in_has_no_delivery_fee(cart):
    pricing = price_cart(cart, OrderType.DINE_IN)

    assert pricing.subtotal == Decimal("30.97")
    assert pricing.tax == Decimal("3.10")
    assert pricing.delivery_fee == Decimal("0.00")
    assert pricing.total == Decimal("34.07")


def test_takeaway_matches_dine_in(cart):
    assert price_cart(cart, "takeaway") == price_cart(cart, "dine_in")


def test_delivery_adds_flat_fee(cart):
    pricing = price_cart(cart, OrderType.DELIVERY)

    assert pricing.delivery_fee == Decimal("5.99")
    assert pricing.total == Decimal("40.06")


def test_parts_always_sum_to_total():
    cart = Cart()
    for price in ("0.05", "0.05", "0.15", "19.99"):
        cart.add_item(menu_item(f"item {price}", price))

    pricing = price_cart(cart, OrderType.DELIVERY, tip="2.50")

    assert pricing.total == pricing.subtotal + pricing.tax + pricing.delivery_fee + pricing.tip


def test_tax_rounds_half_up():
    assert quantize(Decimal("0.125")) == Decimal("0.13")
    assert quantize(Decimal("3.097")) == Decimal("3.10")


def test_configured_rates(cart):
    pricing = price_cart(
        cart, OrderType.DELIVERY, tax_rate=Decimal("0.08875"), delivery_fee=Decimal("3"),
    )

    assert pricing.tax == Decimal("2.75")
    assert pricing.total == Decimal("36.72")


def test_negative_tip_rejected(cart):
    with pytest.raises(ValidationError) as exc_info:
        price_cart(cart, OrderType.DINE_IN, tip=Decimal("-1"))
    assert exc_info.value.field == "tip"


def test_price_breakdown_serializes_as_strings(cart):
    assert price_cart(cart, OrderType.DINE_IN).to_dict()["total"] == "34.07"


def test_checkout_requires_branch(cart):
    with pytest.raises(BusinessRuleError, match="branch"):
        validate_checkout(cart, OrderType.DINE_IN, None, None)


def test_checkout_rejects_empty_cart():
    with pytest.raises(BusinessRuleError, match="Cart is empty"):
        validate_checkout(Cart(), OrderType.DINE_IN, None, "downtown")


@pytest.mark.parametrize("address", [None, "", "   "])
def test_delivery_requires_address(cart, address):
    with pytest.raises(ValidationError) as exc_info:
        validate_checkout(cart, OrderType.DELIVERY, address, "downtown")
    assert exc_info.value.fields == {"delivery_address": "Please enter delivery address"}


def test_delivery_address_is_trimmed(cart):
    assert validate_checkout(cart, "delivery", "  350 Fifth Avenue ", "downtown") == "350 Fifth Avenue"


def test_non_delivery_ignores_address(cart):
    assert validate_checkout(cart, OrderType.TAKEAWAY, "350 Fifth Avenue", "downtown") is None
