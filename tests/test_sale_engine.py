from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from merch_pos.exceptions import ServerError
from merch_pos.models import INVENTORY_TABLE, SALES_HISTORY_TABLE
from merch_pos.sales import sale_total
from merch_pos.stores.memory import MemoryTableStore
from merch_pos.stores.sql import SqlTableStore

from conftest import Kiosk


def _ticking_clock(start: datetime | None = None):
    current = [start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)]

    def clock() -> datetime:
        value = current[0]
        current[0] = value + timedelta(seconds=1)
        return value

    return clock


@dataclass
class FailingMemoryStore(MemoryTableStore):
    fail_table: str | None = None

    def insert(self, table, row):
        if table == self.fail_table:
            raise ServerError(code="DATABASE_ERROR", message="disk full", status_code=500)
        return super().insert(table, row)


@dataclass
class FailingSqlStore(SqlTableStore):
    fail_table: str | None = None

    def insert(self, table, row):
        if table == self.fail_table:
            raise ServerError(code="DATABASE_ERROR", message="disk full", status_code=500)
        return super().insert(table, row)


def test_mug_sale_decrements_stock_and_records_history(any_kiosk: Kiosk) -> None:
    any_kiosk.seed("Mug", "10", 5)
    any_kiosk.inventory.load()
    any_kiosk.cart.set("Mug", 2)

    records = any_kiosk.engine.complete_sale(any_kiosk.cart)

    assert any_kiosk.inventory.get("Mug").quantity == 3
    assert len(records) == 1
    record = records[0]
    assert record.item_name == "Mug"
    assert record.quantity == 2
    assert record.unit_price == Decimal("10")
    assert record.line_total == Decimal("20")
    assert any_kiosk.cart.is_empty
    assert [r.item_name for r in any_kiosk.history.records] == ["Mug"]
    assert any_kiosk.notifier.alerts == ["Sale completed!"]


def test_multi_line_sale_shares_one_timestamp(kiosk: Kiosk) -> None:
    kiosk.engine.clock = _ticking_clock()
    kiosk.seed("Mug", "10", 5)
    kiosk.seed("Tee", "25.50", 4)
    kiosk.inventory.load()
    kiosk.cart.set("Mug", 1)
    kiosk.cart.set("Tee", 2)

    records = kiosk.engine.complete_sale(kiosk.cart)

    assert {record.timestamp for record in records} == {datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)}
    assert sale_total(records) == Decimal("61.00")
    assert len(kiosk.store.select(SALES_HISTORY_TABLE)) == 2


def test_history_price_is_not_rewritten_by_later_price_edits(kiosk: Kiosk) -> None:
    kiosk.seed("Mug", "10", 5)
    kiosk.inventory.load()
    kiosk.cart.set("Mug", 1)
    kiosk.engine.complete_sale(kiosk.cart)

    assert kiosk.inventory.update_field("Mug", "price", "12")
    kiosk.history.load()

    assert kiosk.inventory.get("Mug").price == Decimal("12")
    assert kiosk.history.records[0].unit_price == Decimal("10")
    assert kiosk.history.records[0].line_total == Decimal("10")


def test_history_is_newest_first(kiosk: Kiosk) -> None:
    kiosk.engine.clock = _ticking_clock()
    kiosk.seed("Mug", "10", 5)
    kiosk.seed("Tee", "20", 5)
    kiosk.inventory.load()

    kiosk.cart.set("Mug", 1)
    kiosk.engine.complete_sale(kiosk.cart)
    kiosk.cart.set("Tee", 1)
    kiosk.engine.complete_sale(kiosk.cart)

    assert [record.item_name for record in kiosk.history.records] == ["Tee", "Mug"]


def test_empty_cart_is_a_no_op(kiosk: Kiosk) -> None:
    kiosk.seed("Mug", "10", 5)
    kiosk.inventory.load()

    assert kiosk.engine.complete_sale(kiosk.cart) == []
    assert kiosk.store.select(SALES_HISTORY_TABLE) == []
    assert kiosk.notifier.alerts == []


def test_oversold_cart_is_refused_before_any_write(any_kiosk: Kiosk) -> None:
    any_kiosk.seed("Mug", "10", 5)
    any_kiosk.seed("Tee", "20", 1)
    any_kiosk.inventory.load()
    any_kiosk.cart.set("Mug", 2)
    any_kiosk.cart.set("Tee", 3)

    assert any_kiosk.engine.complete_sale(any_kiosk.cart) == []

    assert any_kiosk.inventory.get("Mug").quantity == 5
    assert any_kiosk.inventory.get("Tee").quantity == 1
    assert any_kiosk.store.select(SALES_HISTORY_TABLE) == []
    assert any_kiosk.cart.as_dict() == {"Mug": 2, "Tee": 3}
    assert "Only 1 of 'Tee' left" in any_kiosk.notifier.alerts[0]


def test_cart_line_for_unknown_item_is_refused(kiosk: Kiosk) -> None:
    kiosk.seed("Mug", "10", 5)
    kiosk.inventory.load()
    kiosk.cart.set("Ghost", 1)

    assert kiosk.engine.complete_sale(kiosk.cart) == []
    assert kiosk.notifier.alerts == ["'Ghost' is not in the inventory"]


def test_selling_entire_stock_leaves_zero(kiosk: Kiosk) -> None:
    kiosk.seed("Mug", "10", 2)
    kiosk.inventory.load()
    kiosk.cart.set("Mug", 2)

    kiosk.engine.complete_sale(kiosk.cart)

    assert kiosk.inventory.get("Mug").quantity == 0


@pytest.mark.parametrize("backend", ["memory", "sql"])
def test_mid_sale_failure_leaves_no_partial_effects(backend: str) -> None:
    if backend == "memory":
        store = FailingMemoryStore()
    else:
        store = FailingSqlStore.from_url("sqlite+pysqlite:///:memory:")
    kiosk = Kiosk(store)
    kiosk.seed("Mug", "10", 5)
    kiosk.seed("Tee", "20", 5)
    kiosk.inventory.load()
    kiosk.cart.set("Mug", 2)
    kiosk.cart.set("Tee", 1)
    store.fail_table = SALES_HISTORY_TABLE

    try:
        assert kiosk.engine.complete_sale(kiosk.cart) == []

        quantities = {row["item"]: row["quantity"] for row in store.select(INVENTORY_TABLE)}
        assert quantities == {"Mug": 5, "Tee": 5}
        assert store.select(SALES_HISTORY_TABLE) == []
        assert kiosk.inventory.get("Mug").quantity == 5
        assert kiosk.cart.as_dict() == {"Mug": 2, "Tee": 1}
        assert kiosk.notifier.alerts == ["Sale failed. Check the log."]
    finally:
        if backend == "sql":
            store.engine.dispose()


def test_sales_are_scoped_to_owner(kiosk: Kiosk) -> None:
    kiosk.seed("Mug", "10", 5, owner="alice")
    kiosk.seed("Mug", "8", 9, owner="bob")
    kiosk.inventory.load("alice")
    kiosk.cart.set("Mug", 1)

    records = kiosk.engine.complete_sale(kiosk.cart, owner="alice")

    assert records[0].owner == "alice"
    rows = {row["owner"]: row["quantity"] for row in kiosk.store.select(INVENTORY_TABLE)}
    assert rows == {"alice": 4, "bob": 9}
    assert kiosk.store.select(SALES_HISTORY_TABLE, {"owner": "bob"}) == []
