"""
Pydantic Schemas for Request/Response Validation

Every row that crosses the API boundary goes through one of these
models, so handlers never pass raw ORM rows or untyped dicts around.

Author: Your Name
Version: 1.0.0
"""

import re
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tastybites.enums import OrderStatus, OrderType, UserType
from tastybites.ordering.lifecycle import Actor, allowed_transitions

EMAIL_PATTERN = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w+$')


# =============================================================================
# AUTH SCHEMAS
# =============================================================================

class SignInRequest(BaseModel):
    """Credentials for signing in."""
    email: str = Field(..., examples=["jane@example.com"])
    password: str = Field(..., examples=["secret123"])

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if len(v) > 255:
            raise ValueError('Email is too long')
        if not EMAIL_PATTERN.match(v):
            raise ValueError('Please enter a valid email address')
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters')
        if len(v) > 100:
            raise ValueError('Password is too long')
        return v


class SignUpRequest(SignInRequest):
    """New customer account."""
    name: str = Field(..., examples=["Jane Doe"])
    phone: Optional[str] = Field(None, examples=["+1-555-0199"])

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Name is required')
        if len(v) > 100:
            raise ValueError('Name is too long')
        return v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if len(v) > 20:
            raise ValueError('Phone number is too long')
        return v or None


class SessionResponse(BaseModel):
    """The caller's session as seen by a view."""
    user_id: uuid.UUID
    email: Optional[str] = None
    access_token: Optional[str] = None
    name: Optional[str] = None
    user_type: Optional[UserType] = None
    is_staff: bool = False
    is_admin: bool = False
    message: Optional[str] = None


# =============================================================================
# CATALOG SCHEMAS
# =============================================================================

class BranchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    address: str
    phone: str
    total_staff: Optional[int] = 0


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    price: Decimal = Field(..., ge=0)
    description: Optional[str] = None
    photo_url: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    available: bool = True


# =============================================================================
# CART & CHECKOUT SCHEMAS
# =============================================================================

class CartLineRequest(BaseModel):
    """One cart line; the price always comes from the catalog."""
    menu_id: uuid.UUID
    quantity: int = Field(..., ge=1, le=99, examples=[2])


class CartQuoteRequest(BaseModel):
    """Cart to price without placing an order."""
    branch_id: Optional[uuid.UUID] = None
    order_type: OrderType = Field(default=OrderType.DINE_IN, examples=["dine_in"])
    items: List[CartLineRequest] = Field(default_factory=list)
    tip: Decimal = Field(default=Decimal("0"), ge=0)


class CheckoutRequest(CartQuoteRequest):
    """Request schema for placing an order."""
    delivery_address: Optional[str] = Field(None, max_length=500, examples=["350 Fifth Avenue"])
    notes: Optional[str] = Field(None, max_length=500, examples=["Extra napkins"])


class PriceBreakdownResponse(BaseModel):
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    tip: Decimal
    total: Decimal
    item_count: int
    line_count: int


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderedItemResponse(BaseModel):
    id: uuid.UUID
    menu_id: Optional[uuid.UUID]
    name: Optional[str]
    quantity: int
    price_each: Decimal
    line_total: Decimal


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: uuid.UUID
    user_id: uuid.UUID
    branch_id: Optional[uuid.UUID]
    branch_name: Optional[str] = None
    branch_address: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    order_type: OrderType
    status: OrderStatus
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    tip: Decimal
    total: Decimal
    delivery_address: Optional[str]
    notes: Optional[str]
    items: List[OrderedItemResponse] = Field(default_factory=list)
    allowed_transitions: List[OrderStatus] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime]

    @classmethod
    def from_order(cls, order, actor: Actor) -> "OrderResponse":
        """Build the DTO from an ORM order, offering the options ``actor`` has."""
        show_customer = Actor(actor) == Actor.STAFF
        return cls(
            id=order.id,
            user_id=order.user_id,
            branch_id=order.branch_id,
            branch_name=order.branch.name if order.branch else None,
            branch_address=order.branch.address if order.branch else None,
            customer_name=order.profile.name if show_customer and order.profile else None,
            customer_phone=order.profile.phone if show_customer and order.profile else None,
            order_type=order.order_type,
            status=order.status,
            subtotal=order.subtotal,
            tax=order.tax,
            delivery_fee=order.delivery_fee,
            tip=order.tip,
            total=order.total,
            delivery_address=order.delivery_address,
            notes=order.notes,
            items=[
                OrderedItemResponse(
                    id=item.id,
                    menu_id=item.menu_id,
                    name=item.menu_item.name if item.menu_item else None,
                    quantity=item.quantity,
                    price_each=item.price_each,
                    line_total=item.price_each * item.quantity,
                )
                for item in order.items
            ],
            allowed_transitions=allowed_transitions(order.order_type, order.status, actor),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderCreateResponse(BaseModel):
    """Response after successfully placing an order."""
    success: bool
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class OrderUpdateRequest(BaseModel):
    """Customer edits allowed while an order is pending."""
    notes: Optional[str] = Field(None, max_length=500)
    delivery_address: Optional[str] = Field(None, max_length=500)


class StatusUpdateRequest(BaseModel):
    status: OrderStatus = Field(..., examples=["preparing"])


class TransitionsResponse(BaseModel):
    order_id: uuid.UUID
    order_type: OrderType
    status: OrderStatus
    allowed: List[OrderStatus]


# =============================================================================
# ADMIN SCHEMAS
# =============================================================================

class StaffAssignmentRequest(BaseModel):
    user_id: uuid.UUID
    branch_id: uuid.UUID
    salary: Optional[Decimal] = Field(None, ge=0)
    working_hours: Optional[int] = Field(None, ge=0, le=168)


class StaffAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    branch_id: Optional[uuid.UUID]
    salary: Optional[Decimal] = None
    working_hours: Optional[int] = None


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
    fields: Optional[dict[str, str]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    change_feed: str
    auth_service: str
    timestamp: datetime
