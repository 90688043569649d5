from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from ..exceptions import ConflictError, ValidationError
from ..models import INVENTORY_TABLE
from .base import Filters, Row, TableStore, matches

DEFAULT_UNIQUE_KEYS = {INVENTORY_TABLE: ("item", "owner")}


@dataclass
class MemoryTableStore(TableStore):
    """Process-local store for the demo kiosk and for tests."""

    unique_keys: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_UNIQUE_KEYS))
    _tables: dict[str, list[Row]] = field(default_factory=dict)
    _next_ids: dict[str, int] = field(default_factory=dict)

    def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        rows = [dict(row) for row in self._rows(table) if matches(row, filters)]
        if order_by:
            rows.sort(key=lambda row: (row.get(order_by) is None, row.get(order_by)), reverse=descending)
        return rows

    def insert(self, table: str, row: Row) -> Row:
        if "id" in row:
            raise ValidationError(code="ID_ASSIGNED_BY_STORE", message="Row ids are assigned by the store")
        self._check_unique(table, row)
        row_id = self._next_ids.get(table, 1)
        self._next_ids[table] = row_id + 1
        stored = {"id": row_id, **row}
        self._rows(table).append(stored)
        return dict(stored)

    def update(self, table: str, patch: Row, filters: Filters | None) -> list[Row]:
        updated: list[Row] = []
        for row in self._rows(table):
            if not matches(row, filters):
                continue
            candidate = {**row, **patch}
            self._check_unique(table, candidate, ignore_id=row["id"])
            row.update(patch)
            updated.append(dict(row))
        return updated

    def delete(self, table: str, filters: Filters | None) -> list[Row]:
        rows = self._rows(table)
        doomed = [row for row in rows if matches(row, filters)]
        self._tables[table] = [row for row in rows if not matches(row, filters)]
        return [dict(row) for row in doomed]

    @contextmanager
    def transaction(self) -> Iterator["MemoryTableStore"]:
        tables = copy.deepcopy(self._tables)
        next_ids = dict(self._next_ids)
        try:
            yield self
        except BaseException:
            self._tables = tables
            self._next_ids = next_ids
            raise

    def _rows(self, table: str) -> list[Row]:
        return self._tables.setdefault(table, [])

    def _check_unique(self, table: str, row: Row, ignore_id: object | None = None) -> None:
        columns = self.unique_keys.get(table)
        if not columns:
            return
        key = tuple(row.get(column) for column in columns)
        for existing in self._rows(table):
            if existing["id"] == ignore_id:
                continue
            if tuple(existing.get(column) for column in columns) == key:
                raise ConflictError(
                    code="UNIQUE_VIOLATION",
                    message=f"duplicate key value violates unique constraint on {table}",
                    details={"columns": list(columns), "values": list(key)},
                    status_code=409,
                )
