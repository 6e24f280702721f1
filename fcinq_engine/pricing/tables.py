"""Model price overrides."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..settings import DEFAULT_HOME
from ..utils import read_json


OVERRIDE_PATH = DEFAULT_HOME / "pricing_overrides.json"


def load_price_overrides(path: Path | None = None) -> dict[str, float]:
    overrides = read_json(path or OVERRIDE_PATH, {})
    if not isinstance(overrides, dict):
        return {}
    prices: dict[str, float] = {}
    for key, val in overrides.items():
        try:
            prices[str(key)] = float(val)
        except (TypeError, ValueError):
            continue
    return prices


def save_price_overrides(payload: dict[str, Any], path: Path | None = None) -> None:
    target = path or OVERRIDE_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
