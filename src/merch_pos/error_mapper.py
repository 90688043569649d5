from __future__ import annotations

from typing import Mapping

from .exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServerError,
    StoreError,
    ValidationError,
)

# Postgres error codes surfaced by PostgREST in the "code" field.
_UNIQUE_VIOLATION = "23505"
_INSUFFICIENT_PRIVILEGE = "42501"


def map_error(status_code: int, payload: Mapping[str, object] | None) -> StoreError:
    payload = payload or {}
    code = str(payload.get("code") or payload.get("error_code") or payload.get("error") or "HTTP_ERROR")
    message = str(
        payload.get("message")
        or payload.get("msg")
        or payload.get("error_description")
        or "Request failed"
    )
    details = payload.get("details") or payload.get("hint")
    mapped: type[StoreError]
    if code == _UNIQUE_VIOLATION or status_code == 409:
        mapped = ConflictError
    elif code == _INSUFFICIENT_PRIVILEGE or status_code == 403:
        mapped = PermissionDeniedError
    elif status_code == 401:
        mapped = AuthError
    elif status_code == 404:
        mapped = NotFoundError
    elif status_code in {400, 422}:
        mapped = ValidationError
    elif status_code == 429:
        mapped = RateLimitError
    elif status_code >= 500:
        mapped = ServerError
    else:
        mapped = StoreError
    return mapped(
        code=code,
        message=message,
        details=details,
        status_code=status_code,
        raw_payload=dict(payload),
    )
