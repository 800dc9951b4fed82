"""Order cart and totals."""

import logging
import math
from collections.abc import Iterable, Iterator

from .errors import IndexOutOfRange, InvalidLineItem
from .models import LineItem, Totals

logger = logging.getLogger(__name__)


class Cart:
    """Ordered, position-addressable list of order lines."""

    def __init__(self) -> None:
        self._items: list[LineItem] = []

    @property
    def items(self) -> tuple[LineItem, ...]:
        """Read-only view of the current lines."""
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(tuple(self._items))

    def add(self, name: str, price: float, pv: float, qty: float) -> LineItem:
        """
        Append a line and return it.

        Line totals are computed here and never change afterwards, even if
        the catalog price of the product is edited later.

        Raises:
            InvalidLineItem: if name is blank or qty is not a positive whole number
        """
        name = (name or "").strip()
        if not name:
            raise InvalidLineItem("Select or type a product name")
        if not math.isfinite(qty) or qty <= 0:
            raise InvalidLineItem(f"Quantity must be at least 1 (got {qty})")
        if float(qty) != int(qty):
            raise InvalidLineItem(f"Quantity must be a whole number (got {qty})")

        qty = int(qty)
        item = LineItem(
            name=name,
            price=price,
            pv=pv,
            qty=qty,
            total_price=price * qty,
            total_pv=pv * qty,
        )
        self._items.append(item)
        logger.debug(f"Added {qty} x {name} to order")
        return item

    def remove_at(self, index: int) -> LineItem:
        """
        Remove and return the line at `index`.

        Raises:
            IndexOutOfRange: if there is no line at that position
        """
        if index < 0 or index >= len(self._items):
            raise IndexOutOfRange(index, len(self._items))
        item = self._items.pop(index)
        logger.debug(f"Removed line {index} ({item.name}) from order")
        return item

    def clear(self) -> None:
        self._items.clear()


def compute_totals(items: Iterable[LineItem], shipping: float) -> Totals:
    """Sum line totals and add flat shipping. Always recomputed from scratch."""
    lines = list(items)
    grand_price = sum(item.total_price for item in lines) + shipping
    grand_pv = sum(item.total_pv for item in lines)
    return Totals(
        grand_price=grand_price,
        grand_pv=grand_pv,
        shipping=shipping,
        line_count=len(lines),
    )
