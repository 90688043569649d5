from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class StoreError(Exception):
    code: str
    message: str
    details: object | None = None
    status_code: int = 0
    raw_payload: object | None = None

    def __str__(self) -> str:
        status = f"[{self.status_code}] " if self.status_code else ""
        return f"{status}{self.code}: {self.message}"


class TransportError(StoreError):
    """Network/transport failure before a response was returned."""


class AuthError(StoreError):
    """Authentication failed or the session is no longer valid."""


class PermissionDeniedError(StoreError):
    """The backing service refused the operation (RLS or role)."""


class NotFoundError(StoreError):
    pass


class ValidationError(StoreError):
    pass


class ConflictError(StoreError):
    """Unique-key or conflict-style errors."""


class RateLimitError(StoreError):
    pass


class ServerError(StoreError):
    pass


class UnknownItemError(StoreError):
    pass


class InsufficientStockError(StoreError):
    pass


@dataclass
class CompensationError(StoreError):
    """A failed transaction could not be fully undone."""

    cause: Exception | None = None
    failed_steps: list[str] = field(default_factory=list)
