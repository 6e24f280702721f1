"""Dry-run workflow transport (offline)."""

from __future__ import annotations

import hashlib
import io
import json
from typing import Any, Sequence

from PIL import Image, ImageDraw, ImageFont

from ..errors import GenerationTimeout
from ..models.paths import resolve_path
from ..models.registry import ModelRegistry
from ..pricing.estimator import PricingEstimator
from ..utils import encode_data_uri, epoch_ms
from .base import CancelToken


class DryRunTransport:
    """Answers like the n8n workflow with locally drawn placeholders."""

    name = "dryrun"

    def __init__(
        self,
        registry: ModelRegistry | None = None,
        delay_s: float = 0.0,
        size: tuple[int, int] = (512, 512),
    ) -> None:
        self.registry = registry or ModelRegistry()
        self.pricing = PricingEstimator(self.registry)
        self.delay_s = max(0.0, delay_s)
        self.size = size
        self.session_total = 0.0
        self._font = None

    def send(self, fields: Sequence[tuple[str, str]], token: CancelToken) -> Any:
        form = dict(fields)
        if self.delay_s and token.wait(self.delay_s):
            raise GenerationTimeout("Dry run cancelled.")
        prompt = form.get("prompt", "")
        model = form.get("selectedModel", "")
        context = json.loads(form["imageContext"]) if form.get("imageContext") else []
        path = resolve_path(form.get("generationType") == "video", bool(context))
        estimate = self.pricing.estimate(path, model)
        current = estimate.total_usd or 0.0
        self.session_total = round(self.session_total + current, 6)
        enhanced = f"{prompt}, professional product photography, studio lighting"

        if path.is_video:
            content: dict[str, Any] = {"video": {"url": self._render_clip(prompt, model)}}
        else:
            count = int(form.get("numImages") or 1)
            stamp = epoch_ms()
            content = {
                "images": [
                    {"id": f"dryrun-{stamp}-{idx}", "url": self._render_still(prompt, model, idx)}
                    for idx in range(1, count + 1)
                ]
            }
        return {
            "phase": "complete",
            "type": path.generation_type,
            "content": content,
            "cost": {"current": current, "session": self.session_total},
            "metadata": {"enhancedPrompt": enhanced, "modelName": model},
        }

    def _render_still(self, prompt: str, model: str, idx: int) -> str:
        image = self._frame(prompt, model, idx)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return encode_data_uri(buffer.getvalue(), "image/png")

    def _render_clip(self, prompt: str, model: str, frames: int = 6) -> str:
        images = [self._frame(prompt, model, idx) for idx in range(frames)]
        buffer = io.BytesIO()
        images[0].save(buffer, format="GIF", save_all=True, append_images=images[1:], duration=120, loop=0)
        return encode_data_uri(buffer.getvalue(), "image/gif")

    def _frame(self, prompt: str, model: str, idx: int) -> Image.Image:
        image = Image.new("RGB", self.size, _color_from_prompt(prompt, idx))
        draw = ImageDraw.Draw(image)
        font = self._font or ImageFont.load_default()
        draw.text((20, 20), f"dryrun {model}\n{prompt[:60]}", fill=(255, 255, 255), font=font)
        return image


def _color_from_prompt(prompt: str, seed: int) -> tuple[int, int, int]:
    digest = hashlib.sha256(f"{prompt}:{seed}".encode("utf-8")).digest()
    return digest[0], digest[1], digest[2]

