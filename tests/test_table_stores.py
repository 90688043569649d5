from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import pytest

from merch_pos.exceptions import CompensationError, ConflictError, ServerError, ValidationError
from merch_pos.models import INVENTORY_TABLE, SALES_HISTORY_TABLE
from merch_pos.stores.compensation import compensating_transaction
from merch_pos.stores.memory import MemoryTableStore
from merch_pos.stores.sql import SqlTableStore, create_store_engine


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return MemoryTableStore()
    sql = SqlTableStore.from_url("sqlite+pysqlite:///:memory:")
    request.addfinalizer(sql.engine.dispose)
    return sql


def _item(name: str, quantity: int = 1, owner: str | None = None) -> dict:
    row = {"item": name, "price": Decimal("5"), "quantity": quantity}
    if owner is not None:
        row["owner"] = owner
    return row


def test_insert_assigns_ids_and_select_filters(store) -> None:
    first = store.insert(INVENTORY_TABLE, _item("Mug", owner="alice"))
    second = store.insert(INVENTORY_TABLE, _item("Tee", owner="bob"))

    assert first["id"] != second["id"]
    assert [row["item"] for row in store.select(INVENTORY_TABLE, {"owner": "alice"})] == ["Mug"]
    assert len(store.select(INVENTORY_TABLE)) == 2


def test_select_orders_rows(store) -> None:
    for stamp, item in [("2024-01-02", "b"), ("2024-01-01", "a"), ("2024-01-03", "c")]:
        store.insert(
            SALES_HISTORY_TABLE,
            {"item": item, "qty": 1, "price": Decimal("1"), "total": Decimal("1"), "timestamp": stamp},
        )

    ascending = store.select(SALES_HISTORY_TABLE, order_by="timestamp")
    descending = store.select(SALES_HISTORY_TABLE, order_by="timestamp", descending=True)

    assert [row["item"] for row in ascending] == ["a", "b", "c"]
    assert [row["item"] for row in descending] == ["c", "b", "a"]


def test_caller_cannot_choose_ids(store) -> None:
    with pytest.raises(ValidationError):
        store.insert(INVENTORY_TABLE, {"id": 7, **_item("Mug")})


def test_item_names_are_unique_per_owner(store) -> None:
    store.insert(INVENTORY_TABLE, _item("Mug"))
    store.insert(INVENTORY_TABLE, _item("Mug", owner="alice"))

    with pytest.raises(ConflictError):
        store.insert(INVENTORY_TABLE, _item("Mug"))
    with pytest.raises(ConflictError):
        store.insert(INVENTORY_TABLE, _item("Mug", owner="alice"))


def test_update_and_delete_return_affected_rows(store) -> None:
    store.insert(INVENTORY_TABLE, _item("Mug", 3))
    store.insert(INVENTORY_TABLE, _item("Tee", 4))

    updated = store.update(INVENTORY_TABLE, {"quantity": 9}, {"item": "Mug"})
    assert [(row["item"], row["quantity"]) for row in updated] == [("Mug", 9)]
    assert store.update(INVENTORY_TABLE, {"quantity": 1}, {"item": "Ghost"}) == []

    deleted = store.delete(INVENTORY_TABLE, {"item": "Tee"})
    assert [row["item"] for row in deleted] == ["Tee"]
    assert [row["item"] for row in store.select(INVENTORY_TABLE)] == ["Mug"]


def test_unfiltered_delete_empties_table(store) -> None:
    store.insert(INVENTORY_TABLE, _item("Mug"))
    store.insert(INVENTORY_TABLE, _item("Tee"))

    assert len(store.delete(INVENTORY_TABLE, None)) == 2
    assert store.select(INVENTORY_TABLE) == []


def test_transaction_rolls_back_every_write(store) -> None:
    store.insert(INVENTORY_TABLE, _item("Mug", 5))

    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.update(INVENTORY_TABLE, {"quantity": 1}, {"item": "Mug"})
            tx.insert(INVENTORY_TABLE, _item("Tee"))
            raise RuntimeError("abort")

    assert [(row["item"], row["quantity"]) for row in store.select(INVENTORY_TABLE)] == [("Mug", 5)]


def test_transaction_commits_on_success(store) -> None:
    with store.transaction() as tx:
        tx.insert(INVENTORY_TABLE, _item("Mug"))
        tx.insert(INVENTORY_TABLE, _item("Tee"))

    assert len(store.select(INVENTORY_TABLE)) == 2


def test_sql_rejects_unknown_columns(sql_store: SqlTableStore) -> None:
    with pytest.raises(ValidationError):
        sql_store.select(INVENTORY_TABLE, {"colour": "red"})
    with pytest.raises(ValidationError):
        sql_store.select("customers")


def test_sql_file_database_persists_between_stores(tmp_path) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'pos.db'}"
    first = SqlTableStore.from_url(url)
    first.insert(INVENTORY_TABLE, _item("Mug", 2))
    first.engine.dispose()

    second = SqlTableStore(engine=create_store_engine(url))
    try:
        assert [row["item"] for row in second.select(INVENTORY_TABLE)] == ["Mug"]
    finally:
        second.engine.dispose()


@dataclass
class FlakyStore(MemoryTableStore):
    """Memory store with no transaction of its own; chosen writes fail."""

    fail_inserts_into: str | None = None
    fail_deletes: bool = False

    def insert(self, table, row):
        if table == self.fail_inserts_into:
            raise ServerError(code="DATABASE_ERROR", message="insert failed", status_code=500)
        return super().insert(table, row)

    def delete(self, table, filters):
        if self.fail_deletes:
            raise ServerError(code="DATABASE_ERROR", message="delete failed", status_code=500)
        return super().delete(table, filters)


def test_compensation_undoes_updates_inserts_and_deletes() -> None:
    inner = FlakyStore()
    inner.insert(INVENTORY_TABLE, _item("Mug", 5))
    inner.insert(INVENTORY_TABLE, _item("Cap", 2))
    inner.fail_inserts_into = SALES_HISTORY_TABLE

    with pytest.raises(ServerError):
        with compensating_transaction(inner) as tx:
            tx.update(INVENTORY_TABLE, {"quantity": 3}, {"item": "Mug"})
            tx.insert(INVENTORY_TABLE, _item("Tee", 1))
            tx.delete(INVENTORY_TABLE, {"item": "Cap"})
            tx.insert(SALES_HISTORY_TABLE, {"item": "Mug"})

    rows = {row["item"]: row["quantity"] for row in inner.select(INVENTORY_TABLE)}
    assert rows == {"Mug": 5, "Cap": 2}


def test_failed_compensation_is_reported() -> None:
    inner = FlakyStore()
    inner.insert(INVENTORY_TABLE, _item("Mug", 5))

    with pytest.raises(CompensationError) as excinfo:
        with compensating_transaction(inner) as tx:
            tx.insert(INVENTORY_TABLE, _item("Tee", 1))
            inner.fail_deletes = True
            raise RuntimeError("network dropped")

    assert excinfo.value.code == "COMPENSATION_FAILED"
    assert len(excinfo.value.failed_steps) == 1
    assert isinstance(excinfo.value.cause, RuntimeError)
