from .app import PosApp, build_app, build_store
from .auth_store import AuthStore
from .cart import Cart
from .config import ConfigError, PosConfig, load_config
from .exceptions import (
    AuthError,
    CompensationError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    StoreError,
    TransportError,
    UnknownItemError,
    ValidationError,
)
from .feedback import ConsoleNotifier, Notifier, RecordingNotifier
from .history import SalesHistory, export_csv
from .inventory import InventoryStore
from .models import CartLine, EditState, GateState, Identity, InventoryItem, SaleRecord
from .sales import SaleEngine, sale_total
from .session import SessionGate
from .validators import FieldKind, accept_edit, validate_field

__version__ = "0.1.0"

__all__ = [
    "AuthError",
    "AuthStore",
    "Cart",
    "CartLine",
    "CompensationError",
    "ConfigError",
    "ConflictError",
    "ConsoleNotifier",
    "EditState",
    "FieldKind",
    "GateState",
    "Identity",
    "InsufficientStockError",
    "InventoryItem",
    "InventoryStore",
    "NotFoundError",
    "Notifier",
    "PosApp",
    "PosConfig",
    "RecordingNotifier",
    "SaleEngine",
    "SaleRecord",
    "SalesHistory",
    "SessionGate",
    "StoreError",
    "TransportError",
    "UnknownItemError",
    "ValidationError",
    "accept_edit",
    "build_app",
    "build_store",
    "export_csv",
    "load_config",
    "sale_total",
    "validate_field",
]
