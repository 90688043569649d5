from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv

BACKENDS = ("memory", "rest", "sql")
DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./merch_pos.db"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class PosConfig:
    backend: str = "memory"
    api_base_url: str = ""
    api_key: str = ""
    database_url: str = DEFAULT_DATABASE_URL
    require_auth: bool = False
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 10.0
    retries: int = 2
    retry_backoff_seconds: float = 0.3
    max_connections: int = 10
    verify_ssl: bool = True
    currency: str = "¥"
    export_timestamps: bool = True
    log_level: str = "INFO"

    @property
    def uses_auth(self) -> bool:
        return self.backend == "rest" and self.require_auth


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> PosConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    backend = (os.getenv("MERCH_POS_BACKEND") or "memory").strip().lower()
    _validate(
        backend in BACKENDS,
        f"Invalid MERCH_POS_BACKEND: expected one of {', '.join(BACKENDS)}, got {backend!r}",
    )

    api_base_url = (os.getenv("MERCH_POS_API_BASE_URL") or "").strip()
    api_key = (os.getenv("MERCH_POS_API_KEY") or "").strip()
    if backend == "rest":
        _require(
            {"MERCH_POS_API_BASE_URL": api_base_url, "MERCH_POS_API_KEY": api_key},
            ["MERCH_POS_API_BASE_URL", "MERCH_POS_API_KEY"],
        )

    database_url = (os.getenv("MERCH_POS_DATABASE_URL") or DEFAULT_DATABASE_URL).strip()
    require_auth = _coerce_bool(os.getenv("MERCH_POS_REQUIRE_AUTH"), False)
    _validate(
        not require_auth or backend == "rest",
        f"Invalid MERCH_POS_REQUIRE_AUTH: sign-in needs the rest backend, got {backend!r}",
    )

    timeout_seconds = _read_float("MERCH_POS_TIMEOUT_SECONDS", "10")
    _validate(
        timeout_seconds > 0,
        f"Invalid MERCH_POS_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )
    connect_timeout_seconds = _read_float(
        "MERCH_POS_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0))
    )
    _validate(
        connect_timeout_seconds > 0,
        f"Invalid MERCH_POS_CONNECT_TIMEOUT_SECONDS: expected > 0, got {connect_timeout_seconds}",
    )
    read_timeout_seconds = _read_float(
        "MERCH_POS_READ_TIMEOUT_SECONDS",
        str(max(timeout_seconds, connect_timeout_seconds)),
    )
    _validate(
        read_timeout_seconds > 0,
        f"Invalid MERCH_POS_READ_TIMEOUT_SECONDS: expected > 0, got {read_timeout_seconds}",
    )

    retries = _read_int("MERCH_POS_RETRIES", "2")
    _validate(retries >= 0, f"Invalid MERCH_POS_RETRIES: expected >= 0, got {retries}")

    retry_backoff_seconds = _read_float("MERCH_POS_RETRY_BACKOFF_SECONDS", "0.3")
    _validate(
        retry_backoff_seconds >= 0,
        f"Invalid MERCH_POS_RETRY_BACKOFF_SECONDS: expected >= 0, got {retry_backoff_seconds}",
    )

    max_connections = _read_int("MERCH_POS_MAX_CONNECTIONS", "10")
    _validate(
        max_connections >= 1,
        f"Invalid MERCH_POS_MAX_CONNECTIONS: expected >= 1, got {max_connections}",
    )

    log_level = (os.getenv("MERCH_POS_LOG_LEVEL") or "INFO").strip().upper()
    _validate(
        log_level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
        f"Invalid MERCH_POS_LOG_LEVEL: got {log_level!r}",
    )

    return PosConfig(
        backend=backend,
        api_base_url=api_base_url.rstrip("/"),
        api_key=api_key,
        database_url=database_url,
        require_auth=require_auth,
        connect_timeout_seconds=connect_timeout_seconds,
        read_timeout_seconds=read_timeout_seconds,
        retries=retries,
        retry_backoff_seconds=retry_backoff_seconds,
        max_connections=max_connections,
        verify_ssl=_coerce_bool(os.getenv("MERCH_POS_VERIFY_SSL"), True),
        currency=os.getenv("MERCH_POS_CURRENCY", "¥"),
        export_timestamps=_coerce_bool(os.getenv("MERCH_POS_EXPORT_TIMESTAMPS"), True),
        log_level=log_level,
    )
