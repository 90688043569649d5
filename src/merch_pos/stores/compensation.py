"""Compensating-action log for stores that cannot span a transaction.

Each write made through :class:`CompensatingTableStore` records its inverse
before it is sent, so a write whose response was lost is still undone.
When the block fails the inverses run newest first. Nothing is retried; an
inverse that fails is reported in :class:`CompensationError`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from ..exceptions import CompensationError, StoreError
from ..logging import log_event
from ..models import INVENTORY_TABLE, SALES_HISTORY_TABLE
from .base import Filters, Row, TableStore

logger = logging.getLogger(__name__)

# Columns that identify a row without its store-assigned id.
NATURAL_KEYS = {
    INVENTORY_TABLE: ("item", "owner"),
    SALES_HISTORY_TABLE: ("item", "timestamp", "owner"),
}


def natural_key(table: str, row: Row) -> dict[str, object]:
    columns = NATURAL_KEYS.get(table)
    if columns is None:
        return {column: value for column, value in row.items() if column != "id"}
    return {column: row.get(column) for column in columns}


@dataclass(frozen=True)
class UndoStep:
    description: str
    action: Callable[[], object]


class CompensatingTableStore(TableStore):
    def __init__(self, inner: TableStore) -> None:
        self.inner = inner
        self.undo_log: list[UndoStep] = []

    def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        return self.inner.select(table, filters, order_by=order_by, descending=descending)

    def insert(self, table: str, row: Row) -> Row:
        key = natural_key(table, row)
        self.undo_log.append(
            UndoStep(
                description=f"delete {table} {key}",
                action=lambda: self.inner.delete(table, key),
            )
        )
        return self.inner.insert(table, row)

    def update(self, table: str, patch: Row, filters: Filters | None) -> list[Row]:
        before = self.inner.select(table, filters)
        for image in before:
            restore = {column: image.get(column) for column in patch}
            self.undo_log.append(
                UndoStep(
                    description=f"restore {table} id={image['id']} {restore}",
                    action=lambda row_id=image["id"], restore=restore: self.inner.update(
                        table, restore, {"id": row_id}
                    ),
                )
            )
        return self.inner.update(table, patch, filters)

    def delete(self, table: str, filters: Filters | None) -> list[Row]:
        before = self.inner.select(table, filters)
        for image in before:
            # the re-inserted row gets a new id from the store
            values = {column: value for column, value in image.items() if column != "id"}
            self.undo_log.append(
                UndoStep(
                    description=f"reinsert {table} {values}",
                    action=lambda values=values: self._reinsert(table, values),
                )
            )
        return self.inner.delete(table, filters)

    def _reinsert(self, table: str, values: Row) -> None:
        if not self.inner.select(table, natural_key(table, values)):
            self.inner.insert(table, values)

    @contextmanager
    def transaction(self) -> Iterator["CompensatingTableStore"]:
        # Nested blocks join the enclosing log.
        yield self

    def rollback(self, cause: Exception) -> None:
        failed: list[str] = []
        for step in reversed(self.undo_log):
            try:
                step.action()
            except StoreError as exc:
                failed.append(step.description)
                log_event(
                    logger,
                    {"module": "stores", "action": "compensate", "outcome": "error", "step": step.description, "error": str(exc)},
                    level=logging.ERROR,
                )
        log_event(
            logger,
            {"module": "stores", "action": "rollback", "outcome": "partial" if failed else "success", "steps": len(self.undo_log)},
            level=logging.WARNING,
        )
        self.undo_log.clear()
        if failed:
            raise CompensationError(
                code="COMPENSATION_FAILED",
                message=f"{len(failed)} write(s) could not be undone after: {cause}",
                details={"failed_steps": failed},
                cause=cause,
                failed_steps=failed,
            ) from cause


@contextmanager
def compensating_transaction(store: TableStore) -> Iterator[TableStore]:
    log = CompensatingTableStore(store)
    try:
        yield log
    except Exception as exc:
        log.rollback(exc)
        raise
