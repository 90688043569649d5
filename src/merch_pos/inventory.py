from __future__ import annotations

import logging
from decimal import Decimal

import pydantic

from .cart import Cart
from .exceptions import StoreError
from .feedback import Notifier
from .logging import log_event
from .models import INVENTORY_TABLE, EditState, InventoryItem
from .stores.base import TableStore, scope
from .validators import (
    FieldKind,
    to_price,
    to_quantity,
    validate_field,
    validate_name_text,
    validate_price_text,
    validate_quantity_text,
)

logger = logging.getLogger(__name__)

_LEVELS = {"error": logging.ERROR, "skipped_row": logging.WARNING}


class InventoryStore:
    """Item name -> :class:`InventoryItem`, mirrored from the ``inventory`` table.

    Every remote write, successful or not, is followed by a reload so the
    mapping always converges on what the table holds.
    """

    def __init__(self, store: TableStore, notifier: Notifier, cart: Cart | None = None) -> None:
        self.store = store
        self.notifier = notifier
        self.cart = cart
        self.items: dict[str, InventoryItem] | None = None
        self._edit_states: dict[str, EditState] = {}
        self._staged: dict[str, int | None] = {}

    @property
    def is_loaded(self) -> bool:
        return self.items is not None

    def snapshot(self) -> dict[str, InventoryItem]:
        return dict(self.items or {})

    def get(self, name: str) -> InventoryItem | None:
        return (self.items or {}).get(name)

    def load(self, owner: str | None = None) -> dict[str, InventoryItem]:
        try:
            rows = self.store.select(INVENTORY_TABLE, scope(owner))
        except StoreError as exc:
            self._log("load", "error", owner, error=str(exc))
            return self.snapshot()
        items: dict[str, InventoryItem] = {}
        for row in rows:
            try:
                item = InventoryItem.from_row(row)
            except pydantic.ValidationError as exc:
                self._log("load", "skipped_row", owner, row_id=row.get("id"), error=str(exc))
                continue
            items[item.name] = item
        self.items = items
        # Edit flags for rows that vanished remotely are meaningless.
        for name in [name for name in self._edit_states if name not in self.items]:
            self._forget(name)
        self._log("load", "success", owner, count=len(self.items))
        return self.snapshot()

    def reset(self) -> None:
        self.items = None
        self._edit_states.clear()
        self._staged.clear()

    def add_item(self, name: str, price: str, quantity: str, owner: str | None = None) -> bool:
        if not (validate_name_text(name) and price and quantity):
            return False
        if validate_price_text(price) is None or validate_quantity_text(quantity) is None:
            return False
        row = {"item": name, "price": to_price(price), "quantity": to_quantity(quantity)}
        if owner is not None:
            row["owner"] = owner
        try:
            self.store.insert(INVENTORY_TABLE, row)
        except StoreError as exc:
            self._log("add_item", "error", owner, item=name, error=str(exc))
            self.notifier.alert("Failed to add item. Check the log.")
            return False
        self._log("add_item", "success", owner, item=name)
        self.load(owner)
        return True

    def update_field(self, name: str, field: FieldKind | str, value: str, owner: str | None = None) -> bool:
        kind = FieldKind(field)
        if kind is FieldKind.NAME or name not in (self.items or {}):
            return False
        accepted = validate_field(kind, value)
        if accepted is None:
            return False
        if kind is FieldKind.QUANTITY:
            return self._stage_quantity(name, accepted)

        price = to_price(accepted)
        self.items[name] = self.items[name].model_copy(update={"price": price})
        ok = self._write(name, {"price": price}, owner, action="update_price")
        self.load(owner)
        return ok

    def edit_state(self, name: str) -> EditState:
        return self._edit_states.get(name, EditState.LOCKED)

    def staged_quantity(self, name: str) -> int | None:
        return self._staged.get(name)

    def displayed_quantity(self, name: str) -> int | None:
        if self.edit_state(name) is EditState.EDITING:
            return self._staged.get(name)
        item = self.get(name)
        return item.quantity if item else None

    def toggle_edit(self, name: str, owner: str | None = None) -> EditState:
        item = self.get(name)
        if item is None:
            return EditState.LOCKED
        if self.edit_state(name) is EditState.LOCKED:
            self._staged[name] = item.quantity
            self._edit_states[name] = EditState.EDITING
            return EditState.EDITING

        staged = self._staged.pop(name, None)
        self._edit_states[name] = EditState.LOCKED
        if staged is not None:
            if self._write(name, {"quantity": staged}, owner, action="commit_quantity"):
                self.items[name] = self.items[name].model_copy(update={"quantity": staged})
            self.load(owner)
        return EditState.LOCKED

    def delete_item(self, name: str, owner: str | None = None) -> bool:
        if name not in (self.items or {}):
            return False
        if not self.notifier.confirm(f'Are you sure you want to delete "{name}"?'):
            return False
        try:
            self.store.delete(INVENTORY_TABLE, scope(owner, item=name))
        except StoreError as exc:
            self._log("delete_item", "error", owner, item=name, error=str(exc))
            self.notifier.alert("Error deleting item. Check the log.")
            self.load(owner)
            return False
        self.items.pop(name, None)
        self._forget(name)
        if self.cart is not None:
            self.cart.discard(name)
        self._log("delete_item", "success", owner, item=name)
        self.load(owner)
        return True

    def _stage_quantity(self, name: str, text: str) -> bool:
        if self.edit_state(name) is not EditState.EDITING:
            return False
        self._staged[name] = to_quantity(text)
        return True

    def _write(self, name: str, patch: dict[str, Decimal | int], owner: str | None, *, action: str) -> bool:
        try:
            self.store.update(INVENTORY_TABLE, patch, scope(owner, item=name))
        except StoreError as exc:
            self._log(action, "error", owner, item=name, error=str(exc))
            self.notifier.alert("Failed to update item. Check the log.")
            return False
        self._log(action, "success", owner, item=name)
        return True

    def _forget(self, name: str) -> None:
        self._edit_states.pop(name, None)
        self._staged.pop(name, None)

    def _log(self, action: str, outcome: str, owner: str | None, **extra: object) -> None:
        log_event(
            logger,
            {"module": "inventory", "action": action, "outcome": outcome, "owner": owner, **extra},
            level=_LEVELS.get(outcome, logging.INFO),
        )
