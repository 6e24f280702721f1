"""Generation paths derived from the video toggle and the image context."""

from __future__ import annotations

from enum import Enum


class GenerationPath(str, Enum):
    T2I = "t2i"
    I2I = "i2i"
    T2V = "t2v"
    I2V = "i2v"

    @property
    def is_video(self) -> bool:
        return self in (GenerationPath.T2V, GenerationPath.I2V)

    @property
    def uses_context(self) -> bool:
        return self in (GenerationPath.I2I, GenerationPath.I2V)

    @property
    def generation_type(self) -> str:
        return "video" if self.is_video else "image"


_PATH_TABLE: dict[tuple[bool, bool], GenerationPath] = {
    (False, False): GenerationPath.T2I,
    (False, True): GenerationPath.I2I,
    (True, False): GenerationPath.T2V,
    (True, True): GenerationPath.I2V,
}


def resolve_path(is_video_mode: bool, has_context: bool) -> GenerationPath:
    return _PATH_TABLE[(bool(is_video_mode), bool(has_context))]
