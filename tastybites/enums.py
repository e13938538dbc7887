"""
Shared enumerations.

Used by the ORM models, the DTOs and the pure ordering logic alike, so
they live apart from anything that touches the database.
"""

import enum


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    IN_DELIVERY = "in_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(str, enum.Enum):
    """Fulfillment mode."""
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class UserType(str, enum.Enum):
    """Profile user type shown in the UI (distinct from roles)."""
    CUSTOMER = "customer"
    STAFF = "staff"


class AppRole(str, enum.Enum):
    """Authorization label checked server-side."""
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"
