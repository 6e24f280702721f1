"""Shared slash-command metadata for parse + chat handling."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandSpec:
    command: str
    action: str
    arg_kind: str
    help: str


COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("video", "set_video_mode", "toggle", "Toggle video mode (/video on|off)"),
    CommandSpec("model", "set_model", "raw", "Select a model for the active path"),
    CommandSpec("models", "list_models", "none", "List models for the active path"),
    CommandSpec("upload", "upload", "multi_path", "Add image files to the context"),
    CommandSpec("select", "select_result", "index", "Add result <n> of the last generation to the context"),
    CommandSpec("remove", "remove_context", "raw", "Remove a context image by id"),
    CommandSpec("clear", "clear_context", "none", "Clear the image context"),
    CommandSpec("context", "show_context", "none", "Show the image context"),
    CommandSpec("download", "download", "optional_index", "Save result <n> (or all results) to disk"),
    CommandSpec("plan", "preview", "rest", "Preview path, model, timeout and cost for a prompt"),
    CommandSpec("session", "show_session", "none", "Show the session id and running cost"),
    CommandSpec("help", "help", "none", "Show commands"),
)

COMMAND_MAP = {spec.command: spec for spec in COMMANDS}

_TRUE_WORDS = {"on", "1", "true", "yes"}
_FALSE_WORDS = {"off", "0", "false", "no"}


def parse_toggle(arg: str) -> bool | None:
    lowered = arg.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    return None
