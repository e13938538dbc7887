import uuid
from decimal import Decimal

import pytest

from tastybites.core.errors import (
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
    OrderLockedError,
)
from tastybites.database import async_session_maker
from tastybites.enums import AppRole, OrderStatus, OrderType, UserType
from tastybites.models import Branch, MenuItem, Profile
from tastybites.ordering.cart import Cart
from tastybites.ordering.lifecycle import Actor
from tastybites.ordering.pricing import price_cart, validate_checkout
from tastybites.services import store
from tastybites.services.auth import SessionContext
from tastybites.services.policies import AccessContext
from tastybites.services.realtime import MemoryChangeFeed

from conftest import OPERATOR

pytestmark = pytest.mark.anyio


async def new_customer(db, email="jane@example.com", name="Jane Doe") -> AccessContext:
    ctx = AccessContext(user_id=uuid.uuid4(), roles=frozenset({AppRole.CUSTOMER}))
    await store.create_profile(db, ctx, email, name, "+1-555-0199")
    return ctx


def staff_of(branch) -> AccessContext:
    return AccessContext(
        user_id=uuid.uuid4(), staff_branch_id=branch.id, roles=frozenset({AppRole.STAFF}),
    )


async def place(
    db,
    ctx,
    catalog,
    branch="Downtown Branch",
    order_type=OrderType.DINE_IN,
    lines=(("Spring Rolls", 2), ("Chicken Wings", 1)),
    feed=None,
):
    branch_id = catalog.branches[branch].id
    items = {item.id: item for item in catalog.menu.values()}
    cart = Cart.from_lines(items, [(catalog.menu[name].id, qty) for name, qty in lines], branch_id)
    address = validate_checkout(cart, order_type, "350 Fifth Avenue", branch_id)
    return await store.create_order(
        db, ctx, branch_id, cart, order_type, price_cart(cart, order_type),
        delivery_address=address, feed=feed,
    )


async def test_create_profile_grants_customer_role(session):
    ctx = await new_customer(session)

    assert await store.has_role(session, ctx.user_id, AppRole.CUSTOMER)
    assert not await store.has_role(session, ctx.user_id, AppRole.STAFF)
    profile = await store.get_profile(session, ctx, ctx.user_id)
    assert profile.user_type == UserType.CUSTOMER


async def test_catalog_lists_only_available_items(session, catalog):
    salmon = await session.get(MenuItem, catalog.menu["Grilled Salmon"].id)
    salmon.available = False
    await session.commit()

    names = [item.name for item in await store.list_menu(session, AccessContext())]
    assert "Grilled Salmon" not in names
    assert len(names) == len(catalog.menu) - 1
    assert len(await store.list_categories(session, AccessContext())) == 5


async def test_order_round_trips_every_line(session, catalog):
    ctx = await new_customer(session)
    order = await place(
        session, ctx, catalog,
        order_type=OrderType.DELIVERY,
        lines=(("Spring Rolls", 2), ("Chicken Wings", 1), ("Iced Coffee", 3)),
    )

    async with async_session_maker() as fresh:
        reloaded = await store.get_order(fresh, ctx, order.id)

    assert {item.menu_item.name: item.quantity for item in reloaded.items} == {
        "Spring Rolls": 2, "Chicken Wings": 1, "Iced Coffee": 3,
    }
    assert reloaded.status == OrderStatus.PENDING
    assert reloaded.delivery_address == "350 Fifth Avenue"
    assert reloaded.delivery_fee == Decimal("5.99")
    assert reloaded.total == reloaded.subtotal + reloaded.tax + reloaded.delivery_fee + reloaded.tip
    assert reloaded.branch.name == "Downtown Branch"


async def test_price_each_survives_menu_price_change(session, catalog):
    ctx = await new_customer(session)
    order = await place(session, ctx, catalog)

    rolls = await session.get(MenuItem, catalog.menu["Spring Rolls"].id)
    rolls.price = Decimal("9.99")
    await session.commit()

    async with async_session_maker() as fresh:
        reloaded = await store.get_order(fresh, ctx, order.id)

    assert {item.menu_item.name: item.price_each for item in reloaded.items} == {
        "Spring Rolls": Decimal("8.99"), "Chicken Wings": Decimal("12.99"),
    }
    assert reloaded.total == Decimal("34.07")


async def test_non_delivery_order_stores_no_address(session, catalog):
    ctx = await new_customer(session)
    order = await place(session, ctx, catalog, order_type=OrderType.TAKEAWAY)
    assert order.delivery_address is None
    assert order.delivery_fee == Decimal("0.00")


async def test_unknown_branch_rejected(session, catalog):
    ctx = await new_customer(session)
    cart = Cart.from_lines({catalog.menu["Spring Rolls"].id: catalog.menu["Spring Rolls"]},
                           [(catalog.menu["Spring Rolls"].id, 1)])
    with pytest.raises(BusinessRuleError):
        await store.create_order(
            session, ctx, uuid.uuid4(), cart, OrderType.DINE_IN, price_cart(cart, OrderType.DINE_IN),
        )


async def test_create_order_publishes_order_and_items(session, catalog):
    feed = MemoryChangeFeed()
    ctx = await new_customer(session)

    async with feed.subscribe() as subscription:
        order = await place(session, ctx, catalog, feed=feed)
        events = [await subscription.next_event() for _ in range(3)]

    assert [e.relation for e in events] == ["orders", "ordered_items", "ordered_items"]
    assert {e.event_type for e in events} == {"INSERT"}
    assert events[0].row_id == str(order.id)
    assert all(e.branch_id == str(order.branch_id) for e in events)


async def test_orders_of_other_customers_are_invisible(session, catalog):
    jane = await new_customer(session)
    john = await new_customer(session, "john@example.com", "John Smith")
    order = await place(session, jane, catalog)

    with pytest.raises(NotFoundError):
        await store.get_order(session, john, order.id)
    assert await store.list_customer_orders(session, john) == []
    assert [o.id for o in await store.list_customer_orders(session, jane)] == [order.id]


async def test_branch_orders_exclude_finished_and_other_branches(session, catalog):
    ctx = await new_customer(session)
    downtown = catalog.branches["Downtown Branch"]
    staff = staff_of(downtown)

    active = await place(session, ctx, catalog)
    delivered = await place(session, ctx, catalog)
    cancelled = await place(session, ctx, catalog)
    await place(session, ctx, catalog, branch="Westside Branch")

    await store.update_order_status(session, staff, delivered.id, OrderStatus.DELIVERED, Actor.STAFF)
    await store.update_order_status(session, ctx, cancelled.id, OrderStatus.CANCELLED, Actor.CUSTOMER)

    orders = await store.list_branch_orders(session, staff)
    assert [o.id for o in orders] == [active.id]
    assert orders[0].profile.name == "Jane Doe"


async def test_branch_orders_require_assignment(session):
    with pytest.raises(AuthorizationError):
        await store.list_branch_orders(session, AccessContext(user_id=uuid.uuid4()))


async def test_staff_advances_then_customer_is_locked(session, catalog):
    feed = MemoryChangeFeed()
    ctx = await new_customer(session)
    staff = staff_of(catalog.branches["Downtown Branch"])
    order = await place(session, ctx, catalog)

    async with feed.subscribe({"orders"}) as subscription:
        updated = await store.update_order_status(
            session, staff, order.id, OrderStatus.PREPARING, Actor.STAFF, feed=feed,
        )
        event = await subscription.next_event()

    assert updated.status == OrderStatus.PREPARING
    assert event.event_type == "UPDATE"

    with pytest.raises(OrderLockedError):
        await store.update_order_status(session, ctx, order.id, OrderStatus.CANCELLED, Actor.CUSTOMER)
    with pytest.raises(OrderLockedError):
        await store.update_customer_order(session, ctx, order.id, notes="Extra napkins")


async def test_staff_of_other_branch_cannot_touch_order(session, catalog):
    ctx = await new_customer(session)
    order = await place(session, ctx, catalog)

    with pytest.raises(NotFoundError):
        await store.update_order_status(
            session, staff_of(catalog.branches["Westside Branch"]),
            order.id, OrderStatus.PREPARING, Actor.STAFF,
        )


async def test_staff_cannot_advance_own_order_at_another_branch(session, catalog):
    ctx = AccessContext(
        user_id=uuid.uuid4(),
        staff_branch_id=catalog.branches["Downtown Branch"].id,
        roles=frozenset({AppRole.CUSTOMER, AppRole.STAFF}),
    )
    await store.create_profile(session, ctx, "cook@example.com", "Carla Cook")
    order = await place(session, ctx, catalog, branch="Eastside Branch")

    with pytest.raises(AuthorizationError):
        await store.update_order_status(session, ctx, order.id, OrderStatus.DELIVERED, Actor.STAFF)

    assert (await store.get_order(session, ctx, order.id)).status == OrderStatus.PENDING
    cancelled = await store.update_order_status(
        session, ctx, order.id, OrderStatus.CANCELLED, Actor.CUSTOMER,
    )
    assert cancelled.status == OrderStatus.CANCELLED


async def test_customer_edits_pending_order(session, catalog):
    ctx = await new_customer(session)
    order = await place(session, ctx, catalog, order_type=OrderType.DELIVERY)

    updated = await store.update_customer_order(
        session, ctx, order.id, notes="  Ring twice ", delivery_address=" 1 Park Ave ",
    )
    assert updated.notes == "Ring twice"
    assert updated.delivery_address == "1 Park Ave"


async def test_assign_staff_moves_between_branches(session, catalog):
    ctx = await new_customer(session, "cook@example.com", "Carla Cook")
    downtown = catalog.branches["Downtown Branch"]
    westside = catalog.branches["Westside Branch"]

    await store.assign_staff(session, OPERATOR, ctx.user_id, downtown.id, salary=Decimal("3200"))
    await store.assign_staff(session, OPERATOR, ctx.user_id, westside.id, working_hours=40)

    async with async_session_maker() as fresh:
        assert (await fresh.get(Branch, downtown.id)).total_staff == 0
        assert (await fresh.get(Branch, westside.id)).total_staff == 1
        assert (await fresh.get(Profile, ctx.user_id)).user_type == UserType.STAFF

        access = await store.load_access_context(
            fresh, SessionContext(user_id=ctx.user_id, access_token="token"),
        )
    assert access.staff_branch_id == westside.id
    assert access.is_staff


async def test_only_admin_assigns_staff(session, catalog):
    ctx = await new_customer(session)
    with pytest.raises(AuthorizationError):
        await store.assign_staff(session, ctx, ctx.user_id, catalog.branches["Downtown Branch"].id)
