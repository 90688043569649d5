from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Mapping

Row = dict[str, Any]
Filters = Mapping[str, Any]


class TableStore(ABC):
    """Minimal table contract: CRUD with equality filters and ordering.

    Every implementation keys rows by a store-assigned ``id`` and treats
    ``filters`` as a conjunction of column equalities; ``None`` means no
    filter. Failures raise :class:`merch_pos.exceptions.StoreError`.
    """

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]: ...

    @abstractmethod
    def insert(self, table: str, row: Row) -> Row: ...

    @abstractmethod
    def update(self, table: str, patch: Row, filters: Filters | None) -> list[Row]: ...

    @abstractmethod
    def delete(self, table: str, filters: Filters | None) -> list[Row]: ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager["TableStore"]:
        """Group writes so they all apply or none do.

        The yielded store must be used for the writes inside the block.
        """


def matches(row: Row, filters: Filters | None) -> bool:
    if not filters:
        return True
    return all(row.get(column) == value for column, value in filters.items())


def scope(owner: str | None, **columns: Any) -> dict[str, Any]:
    """Equality filter on ``columns``, narrowed to ``owner`` when one is set."""
    filters = dict(columns)
    if owner is not None:
        filters["owner"] = owner
    return filters
