from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ..exceptions import ServerError
from ..http_client import HttpClient
from .base import Filters, Row, TableStore
from .compensation import compensating_transaction

TokenProvider = Callable[[], "str | None"]

REST_PREFIX = "/rest/v1"


@dataclass
class RestTableStore(TableStore):
    """Table store over a PostgREST-style HTTP API (e.g. Supabase)."""

    http: HttpClient
    api_key: str
    token_provider: TokenProvider | None = None

    def _headers(self, *, representation: bool = False) -> dict[str, str]:
        token = (self.token_provider() if self.token_provider else None) or self.api_key
        headers = {"apikey": self.api_key, "Authorization": f"Bearer {token}"}
        if representation:
            headers["Prefer"] = "return=representation"
        return headers

    def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        params = [("select", "*"), *_filter_params(filters)]
        if order_by:
            order = f"{order_by}.{'desc' if descending else 'asc'}"
            if order_by != "id":
                # lines of one sale share a timestamp; keep them in insert order
                order += ",id.asc"
            params.append(("order", order))
        data = self.http.request(
            "GET",
            f"{REST_PREFIX}/{table}",
            headers=self._headers(),
            params=params,
            module=table,
            operation="select",
        )
        return _rows(data)

    def insert(self, table: str, row: Row) -> Row:
        data = self.http.request(
            "POST",
            f"{REST_PREFIX}/{table}",
            headers=self._headers(representation=True),
            json_body=_jsonable(row),
            module=table,
            operation="insert",
        )
        rows = _rows(data)
        if not rows:
            raise ServerError(code="EMPTY_RESPONSE", message=f"Expected inserted {table} row in response")
        return rows[0]

    def update(self, table: str, patch: Row, filters: Filters | None) -> list[Row]:
        data = self.http.request(
            "PATCH",
            f"{REST_PREFIX}/{table}",
            headers=self._headers(representation=True),
            json_body=_jsonable(patch),
            params=_filter_params(filters, match_all=True),
            module=table,
            operation="update",
        )
        return _rows(data)

    def delete(self, table: str, filters: Filters | None) -> list[Row]:
        data = self.http.request(
            "DELETE",
            f"{REST_PREFIX}/{table}",
            headers=self._headers(representation=True),
            params=_filter_params(filters, match_all=True),
            module=table,
            operation="delete",
        )
        return _rows(data)

    def transaction(self) -> AbstractContextManager[TableStore]:
        return compensating_transaction(self)


def _filter_params(filters: Filters | None, *, match_all: bool = False) -> list[tuple[str, str]]:
    if not filters:
        # PostgREST refuses unfiltered PATCH/DELETE; this filter matches every row.
        return [("id", "not.is.null")] if match_all else []
    params = []
    for column, value in filters.items():
        if value is None:
            params.append((column, "is.null"))
        elif isinstance(value, bool):
            params.append((column, f"is.{str(value).lower()}"))
        else:
            params.append((column, f"eq.{value}"))
    return params


def _jsonable(row: Row) -> dict[str, Any]:
    return {column: str(value) if isinstance(value, Decimal) else value for column, value in row.items()}


def _rows(data: Any) -> list[Row]:
    if data is None:
        return []
    if isinstance(data, list):
        return [dict(row) for row in data]
    if isinstance(data, dict):
        return [data]
    raise ServerError(code="UNEXPECTED_RESPONSE", message="Expected table rows in response")
