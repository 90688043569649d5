from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC))

from merch_pos.cart import Cart  # noqa: E402
from merch_pos.feedback import RecordingNotifier  # noqa: E402
from merch_pos.history import SalesHistory  # noqa: E402
from merch_pos.inventory import InventoryStore  # noqa: E402
from merch_pos.models import INVENTORY_TABLE  # noqa: E402
from merch_pos.sales import SaleEngine  # noqa: E402
from merch_pos.stores.memory import MemoryTableStore  # noqa: E402
from merch_pos.stores.sql import SqlTableStore  # noqa: E402


class Kiosk:
    def __init__(self, store) -> None:
        self.store = store
        self.notifier = RecordingNotifier()
        self.cart = Cart()
        self.inventory = InventoryStore(store, self.notifier, cart=self.cart)
        self.history = SalesHistory(store, self.notifier)
        self.engine = SaleEngine(store, self.inventory, self.history, self.notifier)

    def seed(self, item: str, price: str, quantity: int, owner: str | None = None) -> None:
        row = {"item": item, "price": Decimal(price), "quantity": quantity}
        if owner is not None:
            row["owner"] = owner
        self.store.insert(INVENTORY_TABLE, row)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def memory_store() -> MemoryTableStore:
    return MemoryTableStore()


@pytest.fixture()
def sql_store() -> SqlTableStore:
    store = SqlTableStore.from_url("sqlite+pysqlite:///:memory:")
    yield store
    store.engine.dispose()


@pytest.fixture()
def kiosk(memory_store: MemoryTableStore) -> Kiosk:
    return Kiosk(memory_store)


@pytest.fixture(params=["memory", "sql"])
def any_kiosk(request) -> Kiosk:
    if request.param == "memory":
        return Kiosk(MemoryTableStore())
    store = SqlTableStore.from_url("sqlite+pysqlite:///:memory:")
    request.addfinalizer(store.engine.dispose)
    return Kiosk(store)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "MERCH_POS_BACKEND",
        "MERCH_POS_API_BASE_URL",
        "MERCH_POS_API_KEY",
        "MERCH_POS_DATABASE_URL",
        "MERCH_POS_REQUIRE_AUTH",
        "MERCH_POS_TIMEOUT_SECONDS",
        "MERCH_POS_CONNECT_TIMEOUT_SECONDS",
        "MERCH_POS_READ_TIMEOUT_SECONDS",
        "MERCH_POS_RETRIES",
        "MERCH_POS_RETRY_BACKOFF_SECONDS",
        "MERCH_POS_MAX_CONNECTIONS",
        "MERCH_POS_VERIFY_SSL",
        "MERCH_POS_CURRENCY",
        "MERCH_POS_EXPORT_TIMESTAMPS",
        "MERCH_POS_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
