"""Deadline and progress pacing per generation path."""

from __future__ import annotations

from dataclasses import dataclass

from ..models.paths import GenerationPath
from ..models.registry import TIER_PRO, TIER_ULTRA, ModelRegistry


IMAGE_TIMEOUT_MS = 120_000
VIDEO_TIMEOUT_MS = 180_000
PREMIUM_VIDEO_TIMEOUT_MS = 300_000

_IMAGE_PROGRESS_S: dict[GenerationPath, int] = {
    GenerationPath.T2I: 25,
    GenerationPath.I2I: 30,
}
_VIDEO_PROGRESS_S_BY_TIER: dict[str, int] = {
    "standard": 45,
    TIER_PRO: 90,
    TIER_ULTRA: 135,
}


@dataclass
class TimingPolicy:
    """Client-side deadlines plus the cosmetic countdown lengths.

    Only ``timeout_for`` drives cancellation. ``progress_duration_for`` paces
    the progress display and never ends a request.
    """

    registry: ModelRegistry
    image_timeout_ms: int = IMAGE_TIMEOUT_MS
    video_timeout_ms: int = VIDEO_TIMEOUT_MS
    premium_video_timeout_ms: int = PREMIUM_VIDEO_TIMEOUT_MS

    def timeout_for(self, path: GenerationPath, model_id: str | None) -> int:
        if not path.is_video:
            return self.image_timeout_ms
        if self.registry.is_premium(path, model_id):
            return self.premium_video_timeout_ms
        return self.video_timeout_ms

    def progress_duration_for(self, path: GenerationPath, model_id: str | None) -> int:
        if not path.is_video:
            return _IMAGE_PROGRESS_S[path]
        tier = self.registry.tier_for(path, model_id)
        return _VIDEO_PROGRESS_S_BY_TIER.get(tier, _VIDEO_PROGRESS_S_BY_TIER["standard"])
