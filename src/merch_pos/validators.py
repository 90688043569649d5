"""Gatekeepers for raw text typed into the kiosk.

Every validator returns the accepted text, or ``None`` when the edit must be
ignored. Rejection is silent: the caller keeps its previous state.
"""

from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum

_QUANTITY_RE = re.compile(r"^\d*$", re.ASCII)
_PRICE_RE = re.compile(r"^\d*\.?\d*$", re.ASCII)
_CART_QTY_RE = re.compile(r"^\d+$", re.ASCII)


class FieldKind(str, Enum):
    NAME = "name"
    PRICE = "price"
    QUANTITY = "quantity"


def validate_quantity_text(raw: str) -> str | None:
    return raw if _QUANTITY_RE.fullmatch(raw) else None


def validate_price_text(raw: str) -> str | None:
    return raw if _PRICE_RE.fullmatch(raw) else None


def validate_name_text(raw: str) -> str | None:
    return raw if raw else None


_VALIDATORS = {
    FieldKind.NAME: validate_name_text,
    FieldKind.PRICE: validate_price_text,
    FieldKind.QUANTITY: validate_quantity_text,
}


def validate_field(kind: FieldKind | str, raw: str | None) -> str | None:
    if raw is None or not isinstance(raw, str):
        return None
    return _VALIDATORS[FieldKind(kind)](raw)


def accept_edit(kind: FieldKind | str, raw: str | None, previous: str) -> str:
    """Return the new field text, or ``previous`` when the edit is rejected."""
    accepted = validate_field(kind, raw)
    return previous if accepted is None else accepted


def to_quantity(text: str) -> int | None:
    """Convert accepted quantity text; the empty string means "not yet typed"."""
    if text == "":
        return None
    return int(text)


def to_price(text: str) -> Decimal:
    if text in {"", "."}:
        return Decimal("0")
    return Decimal(text)


def parse_cart_quantity(raw: str | None) -> tuple[bool, int | None]:
    """Parse a cart entry into ``(accepted, quantity)``.

    An emptied entry is accepted with quantity ``None``.
    """
    if raw is None or raw == "":
        return True, None
    if isinstance(raw, str) and _CART_QTY_RE.fullmatch(raw):
        return True, int(raw)
    return False, None
