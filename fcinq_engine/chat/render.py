"""Terminal rendering of workflow results."""

from __future__ import annotations

import sys
from typing import Callable, Protocol, TextIO

from ..errors import GenerationError
from ..runs.payloads import GenerationResponse, ResultImage
from ..utils import format_cost_usd, is_data_uri
from .context_images import ContextImage, context_image_from_result


class ResultRenderer(Protocol):
    def render(self, response: GenerationResponse, session_total: float) -> None:
        ...

    def render_error(self, error: GenerationError) -> None:
        ...


def display_url(url: str, limit: int = 96) -> str:
    if is_data_uri(url):
        header = url.split(",", 1)[0]
        return f"<{header} {len(url)} chars>"
    if len(url) > limit:
        return url[: limit - 1] + "…"
    return url


class TerminalRenderer:
    def __init__(
        self,
        stream: TextIO | None = None,
        on_select: Callable[[ContextImage], None] | None = None,
    ) -> None:
        self.stream = stream or sys.stdout
        self.on_select = on_select
        self.last_response: GenerationResponse | None = None

    def _print(self, line: str = "") -> None:
        self.stream.write(f"{line}\n")
        self.stream.flush()

    def render(self, response: GenerationResponse, session_total: float) -> None:
        self.last_response = response
        if response.type == "video" and response.video is not None:
            self._print("🎬 Video ready!")
            self._print(f"  {display_url(response.video.url)}")
        else:
            self._print(f"✨ Generated {len(response.images)} professional product displays!")
            for idx, image in enumerate(response.images, start=1):
                self._print(f"  [{idx}] {display_url(image.url)}")
            self._print("  Use /select <n> to edit a result, /download [n] to save it.")
        if response.metadata.enhanced_prompt:
            self._print(f"Enhanced prompt: {response.metadata.enhanced_prompt}")
        if response.metadata.model_name:
            self._print(f"Model: {response.metadata.model_name}")
        current = response.cost.current if response.cost else 0.0
        self._print(f"Cost: {format_cost_usd(current)} • Session: {format_cost_usd(session_total)}")

    def render_error(self, error: GenerationError) -> None:
        self._print(f"Error: {error}. {error.hint}".rstrip())

    def result_images(self) -> list[ResultImage]:
        if self.last_response is None:
            return []
        return list(self.last_response.images)

    def select(self, index: int) -> ContextImage | None:
        """Hand result ``index`` (1-based) to the selection callback."""
        images = self.result_images()
        if index < 1 or index > len(images):
            return None
        entry = context_image_from_result(images[index - 1], index)
        if self.on_select is not None:
            self.on_select(entry)
        return entry
