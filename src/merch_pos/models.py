from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

INVENTORY_TABLE = "inventory"
SALES_HISTORY_TABLE = "sales_history"


class InventoryItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(alias="item")
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=0)
    owner: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "InventoryItem":
        return cls.model_validate(row)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CartLine(BaseModel):
    item_name: str
    quantity: int = Field(gt=0)


class SaleRecord(BaseModel):
    """Immutable snapshot of one sold cart line."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    item_name: str = Field(alias="item")
    quantity: int = Field(alias="qty", ge=0)
    unit_price: Decimal = Field(alias="price", ge=0)
    line_total: Decimal = Field(alias="total", ge=0)
    timestamp: datetime
    owner: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SaleRecord":
        return cls.model_validate(row)

    def to_row(self) -> dict[str, Any]:
        row = self.model_dump(by_alias=True, exclude_none=True)
        row["timestamp"] = format_timestamp(self.timestamp)
        return row


class EditState(str, Enum):
    LOCKED = "locked"
    EDITING = "editing"


class GateState(str, Enum):
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"


class Identity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    email_confirmed_at: str | None = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    token_type: str | None = None
    expires_in: int | None = None
    user: Identity | None = None


class SessionData(BaseModel):
    access_token: str
    refresh_token: str | None = None
    user: Identity | None = None


def format_timestamp(value: datetime) -> str:
    """ISO 8601 with millisecond precision, matching the stored column format."""
    return value.isoformat(timespec="milliseconds")
