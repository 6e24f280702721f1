"""Shared utilities for the FCINQ engine."""

from __future__ import annotations

import base64
import binascii
import json
import os
import re
import time
from datetime import datetime, timezone
from pathlib import Path
import tomllib
from typing import Any


_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+\-]+/[\w.+\-]+)?(?P<params>(?:;[^,;]*)*),(?P<data>.*)$", re.DOTALL)


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def epoch_ms() -> int:
    return int(time.time() * 1000)


def read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return default


def getenv_flag(key: str, default: bool = False) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_dotenv(path: Path | None = None, override: bool = False) -> bool:
    env_path = path or _default_env_path()
    if not env_path.exists():
        return False
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = value.strip()
        if value and value[0] == value[-1] and value.startswith(("\"", "'")):
            value = value[1:-1]
        if not override and key in os.environ:
            continue
        os.environ[key] = value
    return True


def _default_env_path() -> Path:
    cwd = Path.cwd()
    repo_root = _find_repo_root(cwd)
    if repo_root:
        env_path = repo_root / ".env"
        if env_path.exists():
            return env_path
    return cwd / ".env"


def _find_repo_root(start: Path) -> Path | None:
    for current in (start,) + tuple(start.parents):
        if (current / "fcinq_engine").is_dir():
            return current
        pyproject = current / "pyproject.toml"
        if pyproject.exists():
            try:
                data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
            except Exception:
                continue
            if data.get("project", {}).get("name") == "fcinq":
                return current
    return None


def format_cost_usd(value: float | None) -> str:
    if value is None:
        return "$0.000"
    return f"${float(value):.3f}"


def format_seconds(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    if seconds >= 60:
        minutes, secs = divmod(int(seconds), 60)
        return f"{minutes}m {secs:02d}s"
    return f"{seconds:.0f}s"


def is_data_uri(value: str) -> bool:
    return str(value).startswith("data:")


def encode_data_uri(blob: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(blob).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_uri(value: str) -> tuple[bytes, str | None]:
    """Return the payload bytes and MIME type of a ``data:`` URI.

    Only base64 payloads are supported; percent-encoded text URIs are rare for
    images and raise ``ValueError`` like any other malformed value.
    """

    match = _DATA_URI_RE.match(value.strip())
    if not match:
        raise ValueError("Not a data URI.")
    params = match.group("params") or ""
    if ";base64" not in params:
        raise ValueError("Only base64 data URIs are supported.")
    try:
        blob = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc
    return blob, match.group("mime")
