"""
Cart Model

Ephemeral consolidation of selected menu items for one branch. A cart
never holds two lines for the same item and never holds a line whose
quantity dropped to zero.

Items are duck-typed: anything with ``id``, ``name`` and ``price``
works (ORM ``MenuItem`` rows and ``MenuItemResponse`` DTOs alike).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional

from tastybites.core.errors import BusinessRuleError

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce a price (Decimal, int, str or float) to a Decimal without float drift."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class CartLine:
    item: Any
    quantity: int

    @property
    def item_id(self) -> Any:
        return self.item.id

    @property
    def unit_price(self) -> Decimal:
        return to_money(self.item.price)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Cart:
    """
    Client-side pre-order selection scoped to a single branch.

    Example:
        >>> cart = Cart(branch_id=branch.id)
        >>> cart.add_item(spring_rolls)
        >>> cart.add_item(spring_rolls)
        >>> cart.count(), len(cart.lines)
        (2, 1)
    """

    def __init__(self, branch_id: Any = None):
        self.branch_id = branch_id
        self._lines: list[CartLine] = []
        self._listeners: list[Callable[["Cart"], None]] = []

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def on_change(self, listener: Callable[["Cart"], None]) -> None:
        """Register a callback fired after every mutation."""
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in self._listeners:
            listener(self)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_item(self, item: Any) -> CartLine:
        """Add one unit of ``item``, merging into its existing line."""
        line = self._find(item.id)
        if line is not None:
            line.quantity += 1
        else:
            line = CartLine(item=item, quantity=1)
            self._lines.append(line)
        self._changed()
        return line

    def change_quantity(self, item_id: Any, delta: int) -> None:
        """
        Add a signed ``delta`` to the line for ``item_id``.

        The line is dropped when its quantity reaches zero or below.
        Unknown ids are ignored.
        """
        line = self._find(item_id)
        if line is None:
            return
        line.quantity += delta
        if line.quantity <= 0:
            self._lines.remove(line)
        self._changed()

    def clear(self) -> None:
        if self._lines:
            self._lines.clear()
            self._changed()

    def select_branch(self, branch_id: Any) -> int:
        """
        Scope the cart to ``branch_id``.

        Carts never mix branches: switching to a different branch empties
        a non-empty cart. Returns the number of lines dropped.
        """
        if branch_id == self.branch_id:
            return 0
        dropped = len(self._lines)
        self.branch_id = branch_id
        if dropped:
            logger.info(f"Branch switched, dropped {dropped} cart line(s)")
            self._lines.clear()
            self._changed()
        return dropped

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def quantity_of(self, item_id: Any) -> int:
        line = self._find(item_id)
        return line.quantity if line else 0

    def total(self) -> Decimal:
        """Sum of unit price times quantity over all lines."""
        return sum((line.line_total for line in self._lines), ZERO)

    def count(self) -> int:
        """Sum of quantities (not the number of distinct lines)."""
        return sum(line.quantity for line in self._lines)

    def _find(self, item_id: Any) -> Optional[CartLine]:
        for line in self._lines:
            if line.item_id == item_id:
                return line
        return None

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self):
        return f"<Cart branch={self.branch_id} lines={len(self._lines)} count={self.count()}>"

    # -------------------------------------------------------------------------
    # Construction from submitted lines
    # -------------------------------------------------------------------------

    @classmethod
    def from_lines(
        cls,
        catalog: Mapping[Any, Any],
        lines: Iterable[tuple[Any, int]],
        branch_id: Any = None,
    ) -> "Cart":
        """
        Rebuild a cart from ``(menu_id, quantity)`` pairs.

        Prices always come from ``catalog``, never from the caller.
        Repeated ids are merged into one line.

        Raises:
            BusinessRuleError: unknown or unavailable menu item, or a
                non-positive quantity
        """
        cart = cls(branch_id=branch_id)
        for menu_id, quantity in lines:
            if quantity < 1:
                raise BusinessRuleError("Quantities must be at least 1")
            item = catalog.get(menu_id)
            if item is None:
                raise BusinessRuleError(f"Menu item {menu_id} does not exist")
            if not getattr(item, "available", True):
                raise BusinessRuleError(f"{item.name} is currently unavailable")
            cart.add_item(item)
            cart.change_quantity(item.id, quantity - 1)
        return cart
