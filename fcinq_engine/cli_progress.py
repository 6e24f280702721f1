"""CLI progress helpers."""

from __future__ import annotations

import os
import shutil
import sys
import threading
import time
from typing import TextIO

_BOLD = "\x1b[1m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"

# The bar never reaches 100% until the workflow actually answers.
PROGRESS_CAP = 0.95


def progress_fraction(elapsed_s: float, duration_s: float) -> float:
    if duration_s <= 0:
        return PROGRESS_CAP
    return max(0.0, min(elapsed_s / duration_s, PROGRESS_CAP))


def progress_line(label: str, duration_s: float, start: float | None = None, done: bool = False) -> tuple[str, float]:
    now = time.monotonic()
    origin = now if start is None else start
    elapsed = max(0.0, now - origin)
    pct = 100 if done else int(progress_fraction(elapsed, duration_s) * 100)
    remaining = max(0, int(duration_s - elapsed))
    suffix = "done" if done else f"~{remaining}s left"
    return f"• {label} {pct:3d}% ({suffix})", origin


class ProgressAnimator:
    """Cosmetic countdown paced by the path's advisory duration."""

    def __init__(
        self,
        label: str,
        duration_s: float,
        stream: TextIO | None = None,
        interval_s: float = 0.5,
    ) -> None:
        self.label = label
        self.duration_s = max(0.0, float(duration_s))
        self.start: float | None = None
        self.stream = stream or sys.stdout
        self.interval_s = max(0.05, interval_s)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self._started = False

    def start_ticking(self) -> None:
        line, origin = progress_line(self.label, self.duration_s, self.start)
        self.start = origin
        if not self._enabled:
            self.stream.write(f"{_BOLD}{line}{_RESET}\n")
            self.stream.flush()
            return
        self._write_line(f"{_BOLD}{line}{_RESET}", newline=False)
        self._started = True
        self._thread.start()

    def stop(self, done: bool = True) -> None:
        if self._started:
            self._stop.set()
            self._thread.join()
        if done:
            self._write_done_line()
        elif self._enabled:
            self.stream.write("\r\033[K")
            self.stream.flush()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            line, _ = progress_line(self.label, self.duration_s, self.start)
            self._write_line(f"{_BOLD}{line}{_RESET}", newline=False)

    def _write_line(self, line: str, newline: bool) -> None:
        if not self._enabled:
            self.stream.write(f"{line}\n")
            self.stream.flush()
            return
        self.stream.write("\r")
        self.stream.write(line)
        self.stream.write("\033[K")
        if newline:
            self.stream.write("\n")
        self.stream.flush()

    def _write_done_line(self) -> None:
        elapsed = max(0, int(time.monotonic() - (self.start or time.monotonic())))
        duration = _format_duration(elapsed)
        width = _resolve_terminal_width(self.stream, 100)
        line = _separator_line(f"Generated in {duration}", width)
        styled = f"{_GREY}{line}{_RESET}"
        if self._enabled:
            self.stream.write("\r")
            self.stream.write(styled)
            self.stream.write("\033[K\n")
        else:
            self.stream.write(f"{styled}\n")
        self.stream.flush()


def _format_duration(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def _separator_line(label: str, width: int) -> str:
    content = f" {label} "
    if width <= len(content) + 2:
        return content.strip()
    remaining = width - len(content)
    left = remaining // 2
    right = remaining - left
    return f"{'─' * left}{content}{'─' * right}"


def _resolve_terminal_width(stream: TextIO | None, fallback: int) -> int:
    if stream and hasattr(stream, "fileno"):
        try:
            return os.get_terminal_size(stream.fileno()).columns
        except (OSError, ValueError):
            pass
    try:
        return shutil.get_terminal_size(fallback=(fallback, 20)).columns
    except Exception:
        return fallback
