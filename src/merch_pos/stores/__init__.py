from .base import Filters, Row, TableStore, scope
from .compensation import CompensatingTableStore, compensating_transaction
from .memory import MemoryTableStore
from .rest import RestTableStore
from .sql import SqlTableStore

__all__ = [
    "CompensatingTableStore",
    "Filters",
    "MemoryTableStore",
    "RestTableStore",
    "Row",
    "SqlTableStore",
    "TableStore",
    "compensating_transaction",
    "scope",
]
