"""Transport protocol and cancellation token."""

from __future__ import annotations

import threading
import time
from typing import Any, Protocol, Sequence


class CancelToken:
    """Deadline-bound cancellation flag shared by the caller and the transport.

    Cancelling only means the client stopped waiting; a job already accepted
    by the workflow keeps running remotely.
    """

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = int(timeout_ms)
        self.deadline = time.monotonic() + self.timeout_ms / 1000.0
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining_s(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining_s() <= 0.0

    def wait(self, timeout_s: float | None = None) -> bool:
        return self._event.wait(timeout_s)


class GenerationTransport(Protocol):
    name: str

    def send(self, fields: Sequence[tuple[str, str]], token: CancelToken) -> Any:
        """Post the form and return the decoded JSON body."""
        ...
