"""Parse user input into structured intents."""

from __future__ import annotations

import re
import shlex

from .command_registry import COMMAND_MAP, parse_toggle
from .intent_schema import Intent

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$", re.DOTALL)


def _parse_path_args(arg: str) -> list[str]:
    """Parse one or more path args from a slash command.

    Supports quoted paths so spaces work:
      /upload "/path/with spaces/a.png" "/path/b.png"
    """
    if not arg:
        return []
    try:
        parts = shlex.split(arg)
    except ValueError:
        parts = arg.split()
    return [part for part in parts if part]


def _parse_index(arg: str) -> int | None:
    try:
        return int(arg.strip())
    except ValueError:
        return None


def parse_intent(text: str) -> Intent:
    raw = text.strip()
    if not raw:
        return Intent(action="noop", raw=text)
    match = _SLASH_PATTERN.match(raw)
    if not match:
        return Intent(action="generate", raw=text, prompt=raw)

    command = match.group(1).lower()
    arg = (match.group(2) or "").strip()
    spec = COMMAND_MAP.get(command)
    if spec is None:
        return Intent(action="unknown", raw=text, command_args={"command": command, "arg": arg})
    if spec.arg_kind == "toggle":
        # A bare /video flips the current mode.
        return Intent(action=spec.action, raw=text, command_args={"enabled": parse_toggle(arg), "arg": arg})
    if spec.arg_kind == "raw":
        return Intent(action=spec.action, raw=text, command_args={"value": arg})
    if spec.arg_kind == "multi_path":
        return Intent(action=spec.action, raw=text, command_args={"paths": _parse_path_args(arg)})
    if spec.arg_kind == "index":
        return Intent(action=spec.action, raw=text, command_args={"index": _parse_index(arg)})
    if spec.arg_kind == "optional_index":
        return Intent(action=spec.action, raw=text, command_args={"index": _parse_index(arg) if arg else None})
    if spec.arg_kind == "rest":
        return Intent(action=spec.action, raw=text, prompt=arg or None)
    return Intent(action=spec.action, raw=text)
