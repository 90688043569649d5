from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal

from .cart import Cart
from .exceptions import InsufficientStockError, StoreError, UnknownItemError
from .feedback import Notifier
from .history import SalesHistory
from .inventory import InventoryStore
from .logging import log_event
from .models import INVENTORY_TABLE, SALES_HISTORY_TABLE, SaleRecord
from .stores.base import TableStore, scope

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SaleEngine:
    """Turns a cart into stock decrements plus history rows, in one transaction."""

    def __init__(
        self,
        store: TableStore,
        inventory: InventoryStore,
        history: SalesHistory,
        notifier: Notifier,
        clock: Clock = _utc_now,
    ) -> None:
        self.store = store
        self.inventory = inventory
        self.history = history
        self.notifier = notifier
        self.clock = clock

    def build_records(self, cart: Cart, owner: str | None = None) -> list[SaleRecord]:
        """Price every cart line from the current inventory, all stamped with one commit time."""
        items = self.inventory.snapshot()
        timestamp = self.clock()
        records = []
        for line in cart.lines():
            item = items.get(line.item_name)
            if item is None:
                raise UnknownItemError(
                    code="UNKNOWN_ITEM",
                    message=f"{line.item_name!r} is not in the inventory",
                    details={"item": line.item_name},
                )
            if line.quantity > item.quantity:
                raise InsufficientStockError(
                    code="INSUFFICIENT_STOCK",
                    message=f"Only {item.quantity} of {line.item_name!r} left, {line.quantity} requested",
                    details={"item": line.item_name, "available": item.quantity, "requested": line.quantity},
                )
            records.append(
                SaleRecord(
                    item_name=line.item_name,
                    quantity=line.quantity,
                    unit_price=item.price,
                    line_total=item.price * line.quantity,
                    timestamp=timestamp,
                    owner=owner,
                )
            )
        return records

    def complete_sale(self, cart: Cart, owner: str | None = None) -> list[SaleRecord]:
        if cart.is_empty:
            return []
        try:
            records = self.build_records(cart, owner)
        except (UnknownItemError, InsufficientStockError) as exc:
            self._log("complete_sale", "rejected", owner, error=str(exc))
            self.notifier.alert(exc.message)
            return []

        items = self.inventory.snapshot()
        try:
            with self.store.transaction() as tx:
                for record in records:
                    remaining = items[record.item_name].quantity - record.quantity
                    tx.update(INVENTORY_TABLE, {"quantity": remaining}, scope(owner, item=record.item_name))
                for record in records:
                    tx.insert(SALES_HISTORY_TABLE, record.to_row())
        except StoreError as exc:
            self._log("complete_sale", "error", owner, error=str(exc), lines=len(records))
            self.notifier.alert("Sale failed. Check the log.")
            self.inventory.load(owner)
            return []

        self._log("complete_sale", "success", owner, lines=len(records), total=sale_total(records))
        self.inventory.load(owner)
        self.history.load(owner)
        cart.clear()
        self.notifier.alert("Sale completed!")
        return records

    def _log(self, action: str, outcome: str, owner: str | None, **extra: object) -> None:
        log_event(
            logger,
            {"module": "sales", "action": action, "outcome": outcome, "owner": owner, **extra},
            level=logging.ERROR if outcome == "error" else logging.INFO,
        )


def sale_total(records: list[SaleRecord]) -> Decimal:
    return sum((record.line_total for record in records), Decimal("0"))
