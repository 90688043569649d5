"""Signed-in session persisted between kiosk runs.

One file per project URL, so a kiosk pointed at another project never
restores a token minted elsewhere. The file holds a bearer token and is
created owner-only.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from platformdirs import user_data_dir
from pydantic import ValidationError

from .models import SessionData

_UNSAFE = re.compile(r"[^A-Za-z0-9.-]+")


@dataclass
class AuthStore:
    app_name: str = "merch-pos"
    project_url: str = ""
    base_dir: Path | None = None

    @property
    def filename(self) -> str:
        netloc = urlparse(self.project_url).netloc or self.project_url
        slug = _UNSAFE.sub("_", netloc).strip("_") or "default"
        return f"session-{slug}.json"

    def _path(self) -> Path:
        base = self.base_dir or Path(user_data_dir(self.app_name, "merch-pos"))
        base.mkdir(parents=True, exist_ok=True)
        return base / self.filename

    def save(self, session: SessionData) -> None:
        # recreate so a pre-existing file cannot keep looser permissions
        self.clear()
        fd = os.open(self._path(), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump({"project_url": self.project_url, **session.model_dump()}, handle, indent=2)

    def load(self) -> SessionData | None:
        path = self._path()
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict) or data.pop("project_url", None) != self.project_url:
                self.clear()
                return None
            return SessionData.model_validate(data)
        except (json.JSONDecodeError, ValidationError):
            self.clear()
            return None

    def clear(self) -> None:
        path = self._path()
        if path.exists():
            path.unlink()
