"""
Order Store

Structured reads and writes against the relational store. Handlers
never build queries themselves: they call these functions with an
``AccessContext`` and get typed rows back. Every function runs the
access policies for the rows it touches, and every order write
publishes a change event once it has committed.

Concurrent updates to the same order are last-write-wins; there is no
version check.

Author: Your Name
Version: 1.0.0
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tastybites.core.errors import (
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
    ValidationError,
)
from tastybites.enums import AppRole, OrderStatus, OrderType, UserType
from tastybites.models import (
    Branch,
    MenuCategory,
    MenuItem,
    Order,
    OrderedItem,
    Profile,
    StaffAssignment,
    UserRole,
)
from tastybites.ordering.cart import Cart
from tastybites.ordering.lifecycle import (
    ACTIVE_STATUSES,
    Actor,
    ensure_customer_can_modify,
    ensure_transition,
)
from tastybites.ordering.pricing import PriceBreakdown, quantize
from tastybites.services import policies
from tastybites.services.auth.base import SessionContext
from tastybites.services.policies import AccessContext, Action
from tastybites.services.realtime.base import BaseChangeFeed, ChangeEvent

logger = logging.getLogger(__name__)


# =============================================================================
# CALLER CONTEXT & ROLES
# =============================================================================

async def has_role(db: AsyncSession, user_id: uuid.UUID, role: AppRole) -> bool:
    """Role check collaborator: does ``user_id`` hold ``role``."""
    result = await db.execute(
        select(func.count(UserRole.id)).where(
            UserRole.user_id == user_id,
            UserRole.role == role,
        )
    )
    return (result.scalar() or 0) > 0


async def get_staff_branch_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[uuid.UUID]:
    result = await db.execute(
        select(StaffAssignment.branch_id).where(StaffAssignment.user_id == user_id).limit(1)
    )
    return result.scalar_one_or_none()


async def load_access_context(db: AsyncSession, session: SessionContext) -> AccessContext:
    """Resolve what the policies need to know about a signed-in caller."""
    roles = await db.execute(select(UserRole.role).where(UserRole.user_id == session.user_id))
    return AccessContext(
        user_id=session.user_id,
        staff_branch_id=await get_staff_branch_id(db, session.user_id),
        roles=frozenset(roles.scalars().all()),
    )


async def grant_role(db: AsyncSession, user_id: uuid.UUID, role: AppRole) -> None:
    """Add ``role`` unless the user already holds it. Caller commits."""
    if not await has_role(db, user_id, role):
        db.add(UserRole(user_id=user_id, role=role))


# =============================================================================
# PROFILES
# =============================================================================

async def create_profile(
    db: AsyncSession,
    ctx: AccessContext,
    email: str,
    name: str,
    phone: Optional[str] = None,
) -> Profile:
    """
    Create the profile and customer role of a freshly signed-up user.

    Sign-up only ever creates customers; staff are promoted by an admin.
    """
    row = {"id": ctx.user_id}
    policies.enforce(ctx, "profiles", Action.INSERT, row)

    profile = Profile(
        id=ctx.user_id,
        user_type=UserType.CUSTOMER,
        name=name,
        phone=phone or "",
        email=email,
    )
    db.add(profile)
    await grant_role(db, ctx.user_id, AppRole.CUSTOMER)
    await db.commit()

    logger.info(f"Profile created for {email} ({ctx.user_id})")
    return profile


async def get_profile(db: AsyncSession, ctx: AccessContext, user_id: uuid.UUID) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None or not policies.allows(ctx, "profiles", Action.SELECT, profile):
        raise NotFoundError("Profile not found")
    return profile


async def find_profile_by_email(db: AsyncSession, ctx: AccessContext, email: str) -> Profile:
    result = await db.execute(
        select(Profile).where(func.lower(Profile.email) == email.strip().lower())
    )
    profile = result.scalars().first()
    if profile is None or not policies.allows(ctx, "profiles", Action.SELECT, profile):
        raise NotFoundError(f"No profile for {email}")
    return profile


# =============================================================================
# CATALOG
# =============================================================================

async def list_branches(db: AsyncSession, ctx: AccessContext) -> list[Branch]:
    result = await db.execute(select(Branch).order_by(Branch.name))
    return policies.filter_visible(ctx, "branches", result.scalars().all())


async def list_categories(db: AsyncSession, ctx: AccessContext) -> list[MenuCategory]:
    result = await db.execute(select(MenuCategory).order_by(MenuCategory.created_at, MenuCategory.name))
    return policies.filter_visible(ctx, "menu_categories", result.scalars().all())


async def list_menu(
    db: AsyncSession,
    ctx: AccessContext,
    category_id: Optional[uuid.UUID] = None,
    available_only: bool = True,
) -> list[MenuItem]:
    query = select(MenuItem).order_by(MenuItem.name)
    if available_only:
        query = query.where(MenuItem.available.is_(True))
    if category_id is not None:
        query = query.where(MenuItem.category_id == category_id)
    result = await db.execute(query)
    return policies.filter_visible(ctx, "menu", result.scalars().all())


async def load_catalog(
    db: AsyncSession,
    ctx: AccessContext,
    menu_ids: Iterable[uuid.UUID],
) -> dict[uuid.UUID, MenuItem]:
    """Fetch the menu rows a cart refers to, keyed by id."""
    ids = set(menu_ids)
    if not ids:
        return {}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
    items = policies.filter_visible(ctx, "menu", result.scalars().all())
    return {item.id: item for item in items}


# =============================================================================
# ORDERS
# =============================================================================

def _order_query():
    return select(Order).execution_options(populate_existing=True)


async def _publish_order_change(
    feed: Optional[BaseChangeFeed],
    order: Order,
    event_type: str,
    include_items: bool = False,
) -> None:
    if feed is None:
        return
    await feed.publish(ChangeEvent.for_row(
        "orders", event_type, order.id, order.branch_id, order.user_id,
    ))
    if include_items:
        for item in order.items:
            await feed.publish(ChangeEvent.for_row(
                "ordered_items", event_type, item.id, order.branch_id, order.user_id,
            ))


async def _load_order(db: AsyncSession, order_id: uuid.UUID) -> Optional[Order]:
    result = await db.execute(_order_query().where(Order.id == order_id))
    return result.scalar_one_or_none()


async def get_order(db: AsyncSession, ctx: AccessContext, order_id: uuid.UUID) -> Order:
    """
    Fetch one order with its branch, customer profile and line items.

    Raises:
        NotFoundError: the order does not exist or is not visible to the caller
    """
    order = await _load_order(db, order_id)
    if order is None or not policies.allows(ctx, "orders", Action.SELECT, order):
        raise NotFoundError(f"Order #{order_id} not found")
    return order


async def create_order(
    db: AsyncSession,
    ctx: AccessContext,
    branch_id: uuid.UUID,
    cart: Cart,
    order_type: OrderType,
    pricing: PriceBreakdown,
    delivery_address: Optional[str] = None,
    notes: Optional[str] = None,
    feed: Optional[BaseChangeFeed] = None,
) -> Order:
    """
    Insert an order and all of its line items in one transaction.

    Each line's price_each is the catalog price at this moment.
    """
    order_type = OrderType(order_type)
    branch = await db.get(Branch, branch_id)
    if branch is None:
        raise BusinessRuleError("Selected branch does not exist")

    order = Order(
        id=uuid.uuid4(),
        user_id=ctx.user_id,
        branch_id=branch.id,
        order_type=order_type,
        status=OrderStatus.PENDING,
        subtotal=pricing.subtotal,
        tax=pricing.tax,
        tip=pricing.tip,
        delivery_fee=pricing.delivery_fee,
        total=pricing.total,
        delivery_address=delivery_address if order_type == OrderType.DELIVERY else None,
        notes=notes or None,
    )
    policies.enforce(ctx, "orders", Action.INSERT, order)
    policies.enforce(ctx, "ordered_items", Action.INSERT, order)

    order.items = [
        OrderedItem(
            id=uuid.uuid4(),
            menu_id=line.item_id,
            quantity=line.quantity,
            price_each=quantize(line.unit_price),
        )
        for line in cart.lines
    ]

    db.add(order)
    await db.commit()

    logger.info(
        f"Order #{order.id} created: {order_type.value}, {cart.count()} item(s), "
        f"total {pricing.total} at {branch.name}"
    )

    created = await get_order(db, ctx, order.id)
    await _publish_order_change(feed, created, "INSERT", include_items=True)
    return created


async def list_customer_orders(db: AsyncSession, ctx: AccessContext) -> list[Order]:
    """The caller's own orders, newest first."""
    if ctx.user_id is None:
        return []
    result = await db.execute(
        _order_query()
        .where(Order.user_id == ctx.user_id)
        .order_by(Order.created_at.desc())
    )
    return policies.filter_visible(ctx, "orders", result.scalars().all())


async def list_branch_orders(
    db: AsyncSession,
    ctx: AccessContext,
    statuses: Iterable[OrderStatus] = ACTIVE_STATUSES,
) -> list[Order]:
    """
    Orders of the caller's branch, newest first. By default only orders
    still in progress (neither delivered nor cancelled).

    Raises:
        AuthorizationError: the caller is not assigned to a branch
    """
    if ctx.staff_branch_id is None:
        raise AuthorizationError(
            "You are not assigned to any branch yet. Please contact an administrator."
        )
    result = await db.execute(
        _order_query()
        .where(
            Order.branch_id == ctx.staff_branch_id,
            Order.status.in_(list(statuses)),
        )
        .order_by(Order.created_at.desc())
    )
    return policies.filter_visible(ctx, "orders", result.scalars().all())


async def update_order_status(
    db: AsyncSession,
    ctx: AccessContext,
    order_id: uuid.UUID,
    target: OrderStatus,
    actor: Actor,
    feed: Optional[BaseChangeFeed] = None,
) -> Order:
    """
    Move an order to ``target`` on behalf of ``actor``.

    The lifecycle rules and the update policies must both agree.
    """
    order = await get_order(db, ctx, order_id)
    previous = order.status

    if Actor(actor) == Actor.CUSTOMER and order.user_id != ctx.user_id:
        raise AuthorizationError("Only the customer who placed the order can change it")
    if Actor(actor) == Actor.STAFF and not policies.staff_of_branch(ctx, order):
        # Owning the order does not let a staff member work it at another branch
        raise AuthorizationError("You can only update orders for your own branch")
    target = ensure_transition(order.order_type, order.status, target, actor)
    policies.enforce(ctx, "orders", Action.UPDATE, order)

    order.status = target
    await db.commit()

    logger.info(f"Order #{order.id} {previous.value} -> {target.value} by {Actor(actor).value} {ctx.user_id}")

    updated = await get_order(db, ctx, order.id)
    await _publish_order_change(feed, updated, "UPDATE")
    return updated


async def update_customer_order(
    db: AsyncSession,
    ctx: AccessContext,
    order_id: uuid.UUID,
    notes: Optional[str] = None,
    delivery_address: Optional[str] = None,
    feed: Optional[BaseChangeFeed] = None,
) -> Order:
    """
    Edit notes or the delivery address of the caller's pending order.

    Raises:
        OrderLockedError: the order already left pending
        ValidationError: blank address, or an address on a non-delivery order
    """
    order = await get_order(db, ctx, order_id)
    if order.user_id != ctx.user_id:
        raise AuthorizationError("Only the customer who placed the order can change it")
    ensure_customer_can_modify(order.status)
    policies.enforce(ctx, "orders", Action.UPDATE, order)

    if delivery_address is not None:
        if order.order_type != OrderType.DELIVERY:
            raise ValidationError(
                "delivery_address", "Delivery address only applies to delivery orders"
            )
        address = delivery_address.strip()
        if not address:
            raise ValidationError("delivery_address", "Please enter delivery address")
        order.delivery_address = address

    if notes is not None:
        order.notes = notes.strip() or None

    await db.commit()
    logger.info(f"Order #{order.id} edited by customer {ctx.user_id}")

    updated = await get_order(db, ctx, order.id)
    await _publish_order_change(feed, updated, "UPDATE")
    return updated


# =============================================================================
# STAFF ADMINISTRATION
# =============================================================================

async def _refresh_branch_headcount(db: AsyncSession, branch_id: Optional[uuid.UUID]) -> None:
    if branch_id is None:
        return
    branch = await db.get(Branch, branch_id)
    if branch is None:
        return
    result = await db.execute(
        select(func.count(StaffAssignment.id)).where(StaffAssignment.branch_id == branch_id)
    )
    branch.total_staff = result.scalar() or 0


async def assign_staff(
    db: AsyncSession,
    ctx: AccessContext,
    user_id: uuid.UUID,
    branch_id: uuid.UUID,
    salary: Optional[Decimal] = None,
    working_hours: Optional[int] = None,
) -> StaffAssignment:
    """
    Make ``user_id`` staff of ``branch_id``.

    A staff member works at one branch; assigning again moves them.
    """
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    branch = await db.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError("Branch not found")

    result = await db.execute(
        select(StaffAssignment).where(StaffAssignment.user_id == user_id)
    )
    assignment = result.scalar_one_or_none()
    previous_branch_id = None

    if assignment is None:
        assignment = StaffAssignment(user_id=user_id, branch_id=branch_id)
        policies.enforce(ctx, "staff", Action.INSERT, assignment)
        db.add(assignment)
    else:
        policies.enforce(ctx, "staff", Action.UPDATE, assignment)
        previous_branch_id = assignment.branch_id
        assignment.branch_id = branch_id

    if salary is not None:
        assignment.salary = salary
    if working_hours is not None:
        assignment.working_hours = working_hours

    policies.enforce(ctx, "user_roles", Action.INSERT, {"user_id": user_id})
    await grant_role(db, user_id, AppRole.STAFF)

    policies.enforce(ctx, "profiles", Action.UPDATE, profile)
    profile.user_type = UserType.STAFF

    await db.flush()
    await _refresh_branch_headcount(db, branch_id)
    if previous_branch_id != branch_id:
        await _refresh_branch_headcount(db, previous_branch_id)
    await db.commit()

    logger.info(f"User {user_id} assigned to branch {branch.name} by {ctx.user_id}")
    return assignment
