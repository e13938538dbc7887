"""
Access Control Policy Set

Declarative per-row rules, evaluated by the store before every read and
write. Policies on the same relation and action are permissive: a row
passes when any one of them allows it, the same way row-level security
combines permissive policies.

Rows are plain attribute holders (ORM objects or the dicts the store
builds for inserts). For ``ordered_items`` the row checked is the
parent order, since visibility of a line follows its order.

Author: Your Name
Version: 1.0.0
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from tastybites.core.errors import AuthorizationError
from tastybites.enums import AppRole, OrderStatus

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class AccessContext:
    """
    What the policies know about the caller.

    Attributes:
        user_id: Authenticated user, None for anonymous reads
        staff_branch_id: Branch the user is assigned to as staff
        roles: Application roles held by the user
    """
    user_id: Optional[uuid.UUID] = None
    staff_branch_id: Optional[uuid.UUID] = None
    roles: frozenset = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return AppRole.ADMIN in self.roles

    @property
    def is_staff(self) -> bool:
        return AppRole.STAFF in self.roles


ANONYMOUS = AccessContext()


@dataclass(frozen=True)
class Policy:
    name: str
    relation: str
    action: Action
    check: Callable[[AccessContext, Any], bool]


def _get(row: Any, key: str) -> Any:
    if isinstance(row, dict):
        return row.get(key)
    return getattr(row, key, None)


def _anyone(ctx: AccessContext, row: Any) -> bool:
    return True


def _is_self(ctx: AccessContext, row: Any) -> bool:
    return ctx.user_id is not None and _get(row, "id") == ctx.user_id


def _owns(ctx: AccessContext, row: Any) -> bool:
    return ctx.user_id is not None and _get(row, "user_id") == ctx.user_id


def staff_of_branch(ctx: AccessContext, row: Any) -> bool:
    return ctx.staff_branch_id is not None and _get(row, "branch_id") == ctx.staff_branch_id


def _owns_pending(ctx: AccessContext, row: Any) -> bool:
    return _owns(ctx, row) and _get(row, "status") == OrderStatus.PENDING


def _admin(ctx: AccessContext, row: Any) -> bool:
    return ctx.is_admin


POLICIES: tuple[Policy, ...] = (
    # Catalog is public
    Policy("Anyone can view branches", "branches", Action.SELECT, _anyone),
    Policy("Anyone can view menu categories", "menu_categories", Action.SELECT, _anyone),
    Policy("Anyone can view menu", "menu", Action.SELECT, _anyone),

    # Profiles
    Policy("Users can view their own profile", "profiles", Action.SELECT, _is_self),
    Policy("Users can update their own profile", "profiles", Action.UPDATE, _is_self),
    Policy("Users can insert their own profile", "profiles", Action.INSERT, _is_self),
    Policy("Admins can view profiles", "profiles", Action.SELECT, _admin),
    Policy("Admins can update profiles", "profiles", Action.UPDATE, _admin),

    # Staff assignments
    Policy("Staff can view their own record", "staff", Action.SELECT, _owns),
    Policy("Staff can view other staff in same branch", "staff", Action.SELECT, staff_of_branch),
    Policy("Admins can assign staff", "staff", Action.INSERT, _admin),
    Policy("Admins can update staff", "staff", Action.UPDATE, _admin),

    # Orders
    Policy("Users can view their own orders", "orders", Action.SELECT, _owns),
    Policy("Staff can view orders for their branch", "orders", Action.SELECT, staff_of_branch),
    Policy("Users can create their own orders", "orders", Action.INSERT, _owns),
    Policy("Users can update their own pending orders", "orders", Action.UPDATE, _owns_pending),
    Policy("Staff can update orders for their branch", "orders", Action.UPDATE, staff_of_branch),

    # Ordered items (row = parent order)
    Policy("Users can view items in their orders", "ordered_items", Action.SELECT, _owns),
    Policy("Staff can view items for their branch orders", "ordered_items", Action.SELECT, staff_of_branch),
    Policy("Users can insert items to their own orders", "ordered_items", Action.INSERT, _owns),

    # Roles
    Policy("Users can view their own roles", "user_roles", Action.SELECT, _owns),
    Policy("Admins can insert roles", "user_roles", Action.INSERT, _admin),
    Policy("Admins can update roles", "user_roles", Action.UPDATE, _admin),
    Policy("Admins can delete roles", "user_roles", Action.DELETE, _admin),
)


def policies_for(relation: str, action: Action) -> list[Policy]:
    return [p for p in POLICIES if p.relation == relation and p.action == action]


def allows(ctx: AccessContext, relation: str, action: Action, row: Any) -> bool:
    """True when any policy on (relation, action) admits the row. No policy means deny."""
    return any(p.check(ctx, row) for p in policies_for(relation, Action(action)))


def enforce(ctx: AccessContext, relation: str, action: Action, row: Any) -> None:
    """
    Raises:
        AuthorizationError: no policy admits the row
    """
    action = Action(action)
    if not allows(ctx, relation, action, row):
        logger.warning(
            f"Policy denied {action.value} on {relation} for user {ctx.user_id}"
        )
        raise AuthorizationError(
            f"You are not allowed to {action.value} this {relation.rstrip('s').replace('_', ' ')}"
        )


def filter_visible(ctx: AccessContext, relation: str, rows: Iterable[Any]) -> list[Any]:
    """Keep only the rows the caller may select."""
    return [row for row in rows if allows(ctx, relation, Action.SELECT, row)]
