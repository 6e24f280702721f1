"""Model tables for each generation path."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from .paths import GenerationPath


TIER_STANDARD = "standard"
TIER_PRO = "pro"
TIER_ULTRA = "ultra"

# Substrings that mark an id outside the tables as a high-end video model.
PREMIUM_MARKERS = ("veo", "-pro")


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    label: str
    price: float
    tier: str = TIER_STANDARD

    @property
    def premium(self) -> bool:
        return self.tier != TIER_STANDARD


_DEFAULT_MODELS: dict[GenerationPath, tuple[ModelDescriptor, ...]] = {
    GenerationPath.T2I: (
        ModelDescriptor("nano-banana", "Nano Banana", 0.039),
        ModelDescriptor("nano-banana-pro", "Nano Banana Pro", 0.15, TIER_PRO),
        ModelDescriptor("imagen4", "Imagen 4", 0.04),
    ),
    GenerationPath.I2I: (
        ModelDescriptor("nano-banana-edit", "Nano Banana Edit", 0.039),
        ModelDescriptor("nano-banana-pro-edit", "Nano Banana Pro Edit", 0.15, TIER_PRO),
        ModelDescriptor("seedream4-edit", "Seedream 4 Edit", 0.03),
    ),
    GenerationPath.T2V: (
        ModelDescriptor("kling", "Kling 2.5", 0.35),
        ModelDescriptor("sora2-t2v", "Sora 2", 0.40),
        ModelDescriptor("sora2-t2v-pro", "Sora 2 Pro", 1.20, TIER_PRO),
        ModelDescriptor("veo3", "Veo 3", 3.20, TIER_ULTRA),
    ),
    GenerationPath.I2V: (
        ModelDescriptor("kling-i2v", "Kling 2.5 (image)", 0.35),
        ModelDescriptor("sora2-i2v", "Sora 2 (image)", 0.40),
        ModelDescriptor("sora2-i2v-pro", "Sora 2 Pro (image)", 1.20, TIER_PRO),
        ModelDescriptor("veo3", "Veo 3", 3.20, TIER_ULTRA),
    ),
}

_DEFAULT_MODEL_IDS: dict[GenerationPath, str] = {
    GenerationPath.T2I: "nano-banana",
    GenerationPath.I2I: "nano-banana-edit",
    GenerationPath.T2V: "kling",
    GenerationPath.I2V: "kling-i2v",
}


class ModelRegistry:
    def __init__(
        self,
        models: Mapping[GenerationPath, Iterable[ModelDescriptor]] | None = None,
        defaults: Mapping[GenerationPath, str] | None = None,
        price_overrides: Mapping[str, float] | None = None,
    ) -> None:
        source = models if models is not None else _DEFAULT_MODELS
        self._models = {path: tuple(entries) for path, entries in source.items()}
        self._defaults = dict(defaults) if defaults is not None else dict(_DEFAULT_MODEL_IDS)
        if price_overrides:
            self._apply_price_overrides(price_overrides)
        for path in GenerationPath:
            entries = self._models.get(path, ())
            if not entries:
                raise ValueError(f"No models configured for path '{path.value}'.")
            if self._defaults.get(path) not in {entry.id for entry in entries}:
                self._defaults[path] = entries[0].id

    def _apply_price_overrides(self, overrides: Mapping[str, float]) -> None:
        for path, entries in self._models.items():
            self._models[path] = tuple(
                replace(entry, price=float(overrides[entry.id])) if entry.id in overrides else entry
                for entry in entries
            )

    def models_for(self, path: GenerationPath) -> list[ModelDescriptor]:
        return list(self._models[path])

    def default_model_for(self, path: GenerationPath) -> str:
        return self._defaults[path]

    def get(self, path: GenerationPath, model_id: str | None) -> ModelDescriptor | None:
        for entry in self._models[path]:
            if entry.id == model_id:
                return entry
        return None

    def is_premium(self, path: GenerationPath, model_id: str | None) -> bool:
        """Premium by the active path's descriptor; ids outside it go by name markers."""
        if not model_id:
            return False
        descriptor = self.get(path, model_id)
        if descriptor is not None:
            return descriptor.premium
        lowered = model_id.lower()
        return any(marker in lowered for marker in PREMIUM_MARKERS)

    def tier_for(self, path: GenerationPath, model_id: str | None) -> str:
        descriptor = self.get(path, model_id)
        if descriptor is not None:
            return descriptor.tier
        return TIER_PRO if self.is_premium(path, model_id) else TIER_STANDARD
