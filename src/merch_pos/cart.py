from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from .models import CartLine, InventoryItem
from .validators import parse_cart_quantity


class Cart:
    """Quantities the operator intends to sell, keyed by item name.

    Entries are not checked against stock here; the sale engine refuses an
    oversold cart before writing anything.
    """

    def __init__(self) -> None:
        self._lines: dict[str, int] = {}

    def set(self, item: str, qty: int | str | None) -> bool:
        if qty is None or qty == "":
            self._lines.pop(item, None)
            return True
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
            return False
        if qty == 0:
            self._lines.pop(item, None)
        else:
            self._lines[item] = qty
        return True

    def set_text(self, item: str, raw: str | None) -> bool:
        accepted, qty = parse_cart_quantity(raw)
        if not accepted:
            return False
        return self.set(item, qty)

    def get(self, item: str) -> int | None:
        return self._lines.get(item)

    def discard(self, item: str) -> None:
        self._lines.pop(item, None)

    def clear(self) -> None:
        self._lines.clear()

    def lines(self) -> list[CartLine]:
        return [CartLine(item_name=item, quantity=qty) for item, qty in self._lines.items()]

    def as_dict(self) -> dict[str, int]:
        return dict(self._lines)

    def line_total(self, item: str, inventory: Mapping[str, InventoryItem]) -> Decimal:
        return inventory[item].price * self._lines[item]

    def total(self, inventory: Mapping[str, InventoryItem]) -> Decimal:
        return sum(
            (self.line_total(item, inventory) for item in self._lines if item in inventory),
            Decimal("0"),
        )

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, item: object) -> bool:
        return item in self._lines
