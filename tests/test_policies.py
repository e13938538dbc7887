import uuid
from types import SimpleNamespace

import pytest

from tastybites.core.errors import AuthorizationError
from tastybites.enums import AppRole, OrderStatus
from tastybites.services import policies
from tastybites.services.policies import ANONYMOUS, AccessContext, Action

CUSTOMER_ID = uuid.uuid4()
OTHER_ID = uuid.uuid4()
BRANCH_ID = uuid.uuid4()
OTHER_BRANCH_ID = uuid.uuid4()

customer = AccessContext(user_id=CUSTOMER_ID, roles=frozenset({AppRole.CUSTOMER}))
staff = AccessContext(user_id=OTHER_ID, staff_branch_id=BRANCH_ID, roles=frozenset({AppRole.STAFF}))
admin = AccessContext(user_id=uuid.uuid4(), roles=frozenset({AppRole.ADMIN}))


def order(user_id=CUSTOMER_ID, branch_id=BRANCH_ID, status=OrderStatus.PENDING):
    return SimpleNamespace(id=uuid.uuid4(), user_id=user_id, branch_id=branch_id, status=status)


def test_catalog_is_public():
    for relation in ("branches", "menu_categories", "menu"):
        assert policies.allows(ANONYMOUS, relation, Action.SELECT, SimpleNamespace())


def test_customer_sees_only_own_orders():
    assert policies.allows(customer, "orders", Action.SELECT, order())
    assert not policies.allows(customer, "orders", Action.SELECT, order(user_id=OTHER_ID))


def test_staff_sees_only_branch_orders():
    assert policies.allows(staff, "orders", Action.SELECT, order())
    assert not policies.allows(staff, "orders", Action.SELECT, order(branch_id=OTHER_BRANCH_ID))


def test_customer_update_requires_pending():
    assert policies.allows(customer, "orders", Action.UPDATE, order())
    assert not policies.allows(customer, "orders", Action.UPDATE, order(status=OrderStatus.READY))


def test_staff_update_any_status_in_branch():
    assert policies.allows(staff, "orders", Action.UPDATE, order(status=OrderStatus.READY))
    assert not policies.allows(
        staff, "orders", Action.UPDATE, order(branch_id=OTHER_BRANCH_ID, status=OrderStatus.READY),
    )


def test_customer_cannot_create_order_for_someone_else():
    with pytest.raises(AuthorizationError):
        policies.enforce(customer, "orders", Action.INSERT, {"user_id": OTHER_ID})


def test_items_follow_parent_order():
    assert policies.allows(customer, "ordered_items", Action.INSERT, order())
    assert policies.allows(staff, "ordered_items", Action.SELECT, order())
    assert not policies.allows(staff, "ordered_items", Action.INSERT, order())


def test_no_policy_means_deny():
    assert policies.policies_for("orders", Action.DELETE) == []
    assert not policies.allows(admin, "orders", Action.DELETE, order())


def test_only_admins_assign_staff():
    row = {"user_id": CUSTOMER_ID, "branch_id": BRANCH_ID}
    assert policies.allows(admin, "staff", Action.INSERT, row)
    assert not policies.allows(staff, "staff", Action.INSERT, row)


def test_profile_visibility():
    profile = SimpleNamespace(id=CUSTOMER_ID)
    assert policies.allows(customer, "profiles", Action.SELECT, profile)
    assert policies.allows(admin, "profiles", Action.SELECT, profile)
    assert not policies.allows(staff, "profiles", Action.SELECT, profile)


def test_filter_visible():
    mine, theirs = order(), order(user_id=OTHER_ID, branch_id=OTHER_BRANCH_ID)
    assert policies.filter_visible(customer, "orders", [mine, theirs]) == [mine]
