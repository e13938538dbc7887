"""
SQLAlchemy Database Models

Relations owned by the ordering backend:
- Catalog: branches, menu categories, menu items
- People: profiles, staff assignments, application roles
- Orders: orders and their line items (price captured at order time)

Author: Your Name
Version: 1.0.0
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Date,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tastybites.database import Base
from tastybites.enums import AppRole, OrderStatus, OrderType, UserType

__all__ = [
    "AppRole",
    "OrderStatus",
    "OrderType",
    "UserType",
    "Branch",
    "MenuCategory",
    "MenuItem",
    "Profile",
    "StaffAssignment",
    "UserRole",
    "Order",
    "OrderedItem",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# =============================================================================
# CATALOG
# =============================================================================

class Branch(Base):
    """A physical location fulfilling orders."""
    __tablename__ = "branches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    address = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    total_staff = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Branch {self.name}>"


class MenuCategory(Base):
    __tablename__ = "menu_categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self):
        return f"<MenuCategory {self.name}>"


class MenuItem(Base):
    """
    A sellable item. Read-only for customers; owned by the catalog.
    """
    __tablename__ = "menu"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_menu_price_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    photo_url = Column(String(255), nullable=True)
    category_id = Column(Uuid, ForeignKey("menu_categories.id", ondelete="SET NULL"), nullable=True, index=True)
    available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self):
        return f"<MenuItem {self.name} @ {self.price}>"


# =============================================================================
# PEOPLE
# =============================================================================

class Profile(Base):
    """Additional user data keyed by the auth user id."""
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True)
    user_type = Column(
        Enum(UserType, name="user_type", values_callable=_enum_values),
        nullable=False,
        default=UserType.CUSTOMER,
    )
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Profile {self.email} - {self.user_type.value}>"


class StaffAssignment(Base):
    """Links a staff member to exactly one branch."""
    __tablename__ = "staff"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False)
    branch_id = Column(Uuid, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)
    salary = Column(Numeric(10, 2), nullable=True)
    working_hours = Column(Integer, nullable=True)
    hired_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self):
        return f"<StaffAssignment {self.user_id} -> {self.branch_id}>"


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    role = Column(
        Enum(AppRole, name="app_role", values_callable=_enum_values),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self):
        return f"<UserRole {self.user_id} {self.role.value}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    A submitted order.

    Invariants kept by the checkout flow:
        total == subtotal + tax + delivery_fee + tip
        delivery_address is set exactly when order_type is delivery
    """
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)

    order_type = Column(
        Enum(OrderType, name="order_type", values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tax = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tip = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    total = Column(Numeric(10, 2), nullable=False)

    delivery_address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now())

    items = relationship(
        "OrderedItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderedItem.created_at",
    )
    branch = relationship("Branch", lazy="selectin")
    profile = relationship("Profile", lazy="selectin")

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_type.value} - {self.status.value}>"


class OrderedItem(Base):
    """
    One line of a submitted order.

    price_each is copied from the catalog at submission and never
    follows later catalog price changes.
    """
    __tablename__ = "ordered_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_ordered_items_quantity_positive"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    menu_id = Column(Uuid, ForeignKey("menu.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    price_each = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem", lazy="selectin")

    def __repr__(self):
        return f"<OrderedItem {self.quantity}x {self.menu_id} @ {self.price_each}>"
