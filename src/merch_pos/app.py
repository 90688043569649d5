from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .auth_store import AuthStore
from .cart import Cart
from .clients.auth import AuthClient
from .config import PosConfig
from .feedback import Notifier
from .history import SalesHistory
from .http_client import HttpClient
from .inventory import InventoryStore
from .models import SaleRecord
from .sales import SaleEngine
from .session import SessionGate
from .stores import MemoryTableStore, RestTableStore, SqlTableStore, TableStore


@dataclass
class PosApp:
    config: PosConfig
    store: TableStore
    notifier: Notifier
    cart: Cart
    inventory: InventoryStore
    history: SalesHistory
    engine: SaleEngine
    gate: SessionGate | None = None

    @property
    def owner(self) -> str | None:
        return self.gate.owner if self.gate else None

    @property
    def is_ready(self) -> bool:
        """True when the kiosk may show inventory (signed in, if sign-in is required)."""
        return self.gate is None or self.gate.identity is not None

    def start(self) -> None:
        if self.gate is not None and not self.gate.restore():
            return
        self.refresh()

    def refresh(self) -> None:
        self.inventory.load(self.owner)
        self.history.load(self.owner)

    def complete_sale(self) -> list[SaleRecord]:
        return self.engine.complete_sale(self.cart, self.owner)

    def cart_total(self) -> Decimal:
        return self.cart.total(self.inventory.snapshot())


def build_store(config: PosConfig, auth: AuthClient | None = None) -> TableStore:
    if config.backend == "memory":
        return MemoryTableStore()
    if config.backend == "sql":
        return SqlTableStore.from_url(config.database_url)
    http = auth.http if auth else HttpClient(config)
    return RestTableStore(
        http=http,
        api_key=config.api_key,
        token_provider=(lambda: auth.access_token) if auth else None,
    )


def build_app(
    config: PosConfig,
    notifier: Notifier,
    *,
    store: TableStore | None = None,
    auth_store: AuthStore | None = None,
) -> PosApp:
    auth = AuthClient(http=HttpClient(config), api_key=config.api_key) if config.uses_auth else None
    store = store or build_store(config, auth)
    cart = Cart()
    inventory = InventoryStore(store, notifier, cart=cart)
    history = SalesHistory(store, notifier)
    engine = SaleEngine(store, inventory, history, notifier)
    gate = None
    if auth is not None:
        auth_store = auth_store or AuthStore(project_url=config.api_base_url)
        gate = SessionGate(auth, inventory, cart, history, notifier, auth_store=auth_store)
    return PosApp(
        config=config,
        store=store,
        notifier=notifier,
        cart=cart,
        inventory=inventory,
        history=history,
        engine=engine,
        gate=gate,
    )
