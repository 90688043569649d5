from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import pydantic

from .exceptions import StoreError
from .feedback import Notifier
from .logging import log_event
from .models import SALES_HISTORY_TABLE, SaleRecord, format_timestamp
from .stores.base import TableStore, scope

logger = logging.getLogger(__name__)

_LEVELS = {"error": logging.ERROR, "skipped_row": logging.WARNING}

EXPORT_FILENAME = "sales-history.csv"
HEADER = ("Item", "Quantity", "Price", "Total", "Timestamp")


def export_csv(records: Iterable[SaleRecord], include_timestamp: bool = True) -> str:
    """Render records, in the order given, as comma-joined lines under a header.

    Fields are not quoted: an item name containing a comma shifts its row.
    """
    columns = HEADER if include_timestamp else HEADER[:-1]
    lines = [",".join(columns)]
    for record in records:
        fields = [record.item_name, str(record.quantity), str(record.unit_price), str(record.line_total)]
        if include_timestamp:
            fields.append(format_timestamp(record.timestamp))
        lines.append(",".join(fields))
    return "\n".join(lines)


class SalesHistory:
    """Append-only log of committed sale lines, newest first."""

    def __init__(self, store: TableStore, notifier: Notifier) -> None:
        self.store = store
        self.notifier = notifier
        self.records: list[SaleRecord] = []

    def load(self, owner: str | None = None) -> list[SaleRecord]:
        try:
            rows = self.store.select(SALES_HISTORY_TABLE, scope(owner), order_by="timestamp", descending=True)
        except StoreError as exc:
            self._log("load", "error", owner, error=str(exc))
            return list(self.records)
        self.records = self._parse(rows, owner, "load")
        self._log("load", "success", owner, count=len(self.records))
        return list(self.records)

    def reset(self) -> None:
        self.records = []

    def export(self, owner: str | None = None, include_timestamp: bool = True) -> str | None:
        try:
            rows = self.store.select(SALES_HISTORY_TABLE, scope(owner), order_by="timestamp")
        except StoreError as exc:
            self._log("export", "error", owner, error=str(exc))
            self.notifier.alert("Failed to export CSV. Check the log.")
            return None
        return export_csv(self._parse(rows, owner, "export"), include_timestamp=include_timestamp)

    def write_export(
        self,
        directory: str | Path = ".",
        owner: str | None = None,
        include_timestamp: bool = True,
        filename: str = EXPORT_FILENAME,
    ) -> Path | None:
        content = self.export(owner, include_timestamp=include_timestamp)
        if content is None:
            return None
        destination = Path(directory)
        destination.mkdir(parents=True, exist_ok=True)
        path = destination / filename
        path.write_text(content, encoding="utf-8")
        self._log("export", "success", owner, path=str(path))
        return path

    def clear(self, owner: str | None = None) -> bool:
        if not self.notifier.confirm("Are you sure you want to delete ALL sales history? This cannot be undone."):
            return False
        try:
            self.store.delete(SALES_HISTORY_TABLE, scope(owner) or None)
        except StoreError as exc:
            self._log("clear", "error", owner, error=str(exc))
            self.notifier.alert("Error clearing sales history. Check the log.")
            return False
        self._log("clear", "success", owner)
        self.load(owner)
        self.notifier.alert("Sales history cleared.")
        return True

    def _parse(self, rows: list[dict], owner: str | None, action: str) -> list[SaleRecord]:
        records = []
        for row in rows:
            try:
                records.append(SaleRecord.from_row(row))
            except pydantic.ValidationError as exc:
                self._log(action, "skipped_row", owner, row_id=row.get("id"), error=str(exc))
        return records

    def _log(self, action: str, outcome: str, owner: str | None, **extra: object) -> None:
        log_event(
            logger,
            {"module": "history", "action": action, "outcome": outcome, "owner": owner, **extra},
            level=_LEVELS.get(outcome, logging.INFO),
        )
