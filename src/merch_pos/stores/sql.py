from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..exceptions import ConflictError, ServerError, StoreError, TransportError, ValidationError
from ..models import INVENTORY_TABLE, SALES_HISTORY_TABLE
from .base import Filters, Row, TableStore

metadata = MetaData()

inventory = Table(
    INVENTORY_TABLE,
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("item", String(255), nullable=False),
    Column("price", Numeric(12, 2), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("owner", String(64), nullable=True, index=True),
)
# NULL owners would not collide in a plain unique constraint.
Index("uq_inventory_item_owner", inventory.c.item, func.coalesce(inventory.c.owner, ""), unique=True)

sales_history = Table(
    SALES_HISTORY_TABLE,
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("item", String(255), nullable=False),
    Column("qty", Integer, nullable=False),
    Column("price", Numeric(12, 2), nullable=False),
    Column("total", Numeric(14, 2), nullable=False),
    Column("timestamp", String(40), nullable=False, index=True),
    Column("owner", String(64), nullable=True, index=True),
)

TABLES = {table.name: table for table in (inventory, sales_history)}


def create_store_engine(database_url: str) -> Engine:
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if make_url(database_url).database in {None, "", ":memory:"}:
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, echo=False, future=True, connect_args=connect_args, **kwargs)


@dataclass
class SqlTableStore(TableStore):
    """Table store over a SQLAlchemy engine with real transactions."""

    engine: Engine
    _connection: Connection | None = None

    @classmethod
    def from_url(cls, database_url: str) -> "SqlTableStore":
        engine = create_store_engine(database_url)
        metadata.create_all(engine)
        return cls(engine=engine)

    def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        target = _table(table)
        query = select(target).where(*_conditions(target, filters))
        if order_by:
            column = _column(target, order_by)
            query = query.order_by(column.desc() if descending else column.asc(), target.c.id)
        else:
            query = query.order_by(target.c.id)
        with self._connect() as conn:
            return [dict(row) for row in conn.execute(query).mappings().all()]

    def insert(self, table: str, row: Row) -> Row:
        target = _table(table)
        _check_columns(target, row)
        if "id" in row:
            raise ValidationError(code="ID_ASSIGNED_BY_STORE", message="Row ids are assigned by the store")
        with self._connect() as conn:
            result = conn.execute(insert(target).values(**row))
            row_id = result.inserted_primary_key[0]
            created = conn.execute(select(target).where(target.c.id == row_id)).mappings().one()
            return dict(created)

    def update(self, table: str, patch: Row, filters: Filters | None) -> list[Row]:
        target = _table(table)
        _check_columns(target, patch)
        conditions = _conditions(target, filters)
        with self._connect() as conn:
            ids = conn.execute(select(target.c.id).where(*conditions)).scalars().all()
            if not ids:
                return []
            conn.execute(update(target).where(target.c.id.in_(ids)).values(**patch))
            rows = conn.execute(select(target).where(target.c.id.in_(ids)).order_by(target.c.id)).mappings().all()
            return [dict(row) for row in rows]

    def delete(self, table: str, filters: Filters | None) -> list[Row]:
        target = _table(table)
        conditions = _conditions(target, filters)
        with self._connect() as conn:
            rows = conn.execute(select(target).where(*conditions).order_by(target.c.id)).mappings().all()
            if rows:
                conn.execute(delete(target).where(target.c.id.in_([row["id"] for row in rows])))
            return [dict(row) for row in rows]

    @contextmanager
    def transaction(self) -> Iterator["SqlTableStore"]:
        if self._connection is not None:
            yield self
            return
        try:
            with self.engine.begin() as conn:
                yield replace(self, _connection=conn)
        except SQLAlchemyError as exc:
            raise _translate(exc) from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        try:
            if self._connection is not None:
                yield self._connection
            else:
                with self.engine.begin() as conn:
                    yield conn
        except SQLAlchemyError as exc:
            raise _translate(exc) from exc


def _table(name: str) -> Table:
    try:
        return TABLES[name]
    except KeyError:
        raise ValidationError(code="UNKNOWN_TABLE", message=f"Unknown table {name!r}") from None


def _column(table: Table, name: str):
    try:
        return table.c[name]
    except KeyError:
        raise ValidationError(code="UNKNOWN_COLUMN", message=f"Unknown column {table.name}.{name}") from None


def _check_columns(table: Table, row: Row) -> None:
    for name in row:
        _column(table, name)


def _conditions(table: Table, filters: Filters | None) -> list:
    conditions = []
    for name, value in (filters or {}).items():
        column = _column(table, name)
        conditions.append(column.is_(None) if value is None else column == value)
    return conditions


def _translate(exc: SQLAlchemyError) -> StoreError:
    message = str(getattr(exc, "orig", None) or exc)
    if isinstance(exc, IntegrityError):
        return ConflictError(code="INTEGRITY_ERROR", message=message, status_code=409)
    if isinstance(exc, OperationalError):
        return TransportError(code="DATABASE_UNAVAILABLE", message=message)
    return ServerError(code="DATABASE_ERROR", message=message)
