"""Environment-driven engine settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError
from .utils import getenv_flag


WEBHOOK_PLACEHOLDER = "YOUR_N8N_WEBHOOK_URL_HERE"
DEFAULT_HOME = Path.home() / ".fcinq"
DEFAULT_STORAGE_PATH = DEFAULT_HOME / "storage.json"
DEFAULT_EVENTS_PATH = DEFAULT_HOME / "events.jsonl"


@dataclass
class EngineSettings:
    webhook_url: str | None = None
    storage_path: Path = DEFAULT_STORAGE_PATH
    events_path: Path | None = DEFAULT_EVENTS_PATH
    dryrun: bool = False

    @classmethod
    def from_env(cls) -> "EngineSettings":
        storage = os.getenv("FCINQ_STORAGE_PATH")
        events = os.getenv("FCINQ_EVENTS_PATH")
        return cls(
            webhook_url=(os.getenv("FCINQ_WEBHOOK_URL") or "").strip() or None,
            storage_path=Path(storage).expanduser() if storage else DEFAULT_STORAGE_PATH,
            events_path=Path(events).expanduser() if events else DEFAULT_EVENTS_PATH,
            dryrun=getenv_flag("FCINQ_DRYRUN", False),
        )

    def configuration_error(self) -> ConfigurationError | None:
        if self.dryrun:
            return None
        url = self.webhook_url or ""
        if not url or url == WEBHOOK_PLACEHOLDER:
            return ConfigurationError("Webhook URL is not configured.")
        if not url.startswith(("http://", "https://")):
            return ConfigurationError(f"Webhook URL must be http(s): {url}")
        return None

    @property
    def is_configured(self) -> bool:
        return self.configuration_error() is None
