"""Persistent session identity backed by a local key-value file."""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..utils import epoch_ms


SESSION_KEY = "sessionId"


@dataclass
class LocalStorage:
    """String key-value store persisted as a single JSON object.

    Unlike the run cache it re-reads on every access, so two clients pointed at
    the same file agree on the stored session id. Read and write failures raise
    ``OSError`` (or ``ValueError`` for a corrupt file) to the caller.
    """

    path: Path

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"Storage file is not a JSON object: {self.path}")
        return payload

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        payload = self._load()
        if payload.get(key) == value:
            return
        payload[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def remove(self, key: str) -> None:
        payload = self._load()
        if key not in payload:
            return
        del payload[key]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def new_session_id() -> str:
    return f"session-{epoch_ms()}-{secrets.token_hex(5)}"


@dataclass
class SessionStore:
    storage: LocalStorage
    persistent: bool = field(default=True, init=False)
    _memory_id: str | None = field(default=None, init=False, repr=False)

    @classmethod
    def at(cls, path: Path) -> "SessionStore":
        return cls(LocalStorage(path))

    def get_or_create_session_id(self) -> str:
        if self._memory_id is not None:
            return self._memory_id
        try:
            existing = self.storage.get(SESSION_KEY)
            if existing:
                return existing
            session_id = new_session_id()
            self.storage.set(SESSION_KEY, session_id)
            return session_id
        except (OSError, ValueError):
            # Storage unavailable: keep one id for the lifetime of this store.
            self.persistent = False
            self._memory_id = new_session_id()
            return self._memory_id
