"""Model selection, fallback and path resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..pricing.latency import TimingPolicy
from ..runs.payloads import GenerationInput
from .paths import GenerationPath, resolve_path
from .registry import ModelDescriptor, ModelRegistry


@dataclass(frozen=True)
class ModelSelection:
    model: ModelDescriptor
    requested: str | None
    fallback_reason: str | None = None


class ModelSelector:
    def __init__(self, registry: ModelRegistry | None = None) -> None:
        self.registry = registry or ModelRegistry()

    def select(self, path: GenerationPath, requested: str | None) -> ModelSelection:
        if requested:
            model = self.registry.get(path, requested)
            if model:
                return ModelSelection(model=model, requested=requested)
            fallback_reason = f"Requested model '{requested}' unavailable for path '{path.value}'."
        else:
            fallback_reason = "No model specified; using default."

        default_id = self.registry.default_model_for(path)
        model = self.registry.get(path, default_id)
        if model is None:
            raise RuntimeError(f"No default model available for path '{path.value}'.")
        return ModelSelection(model=model, requested=requested, fallback_reason=fallback_reason)


class PathResolver:
    def __init__(self, registry: ModelRegistry | None = None, timing: TimingPolicy | None = None) -> None:
        self.registry = registry or ModelRegistry()
        self.selector = ModelSelector(self.registry)
        self.timing = timing or TimingPolicy(self.registry)

    def resolve_path(self, is_video_mode: bool, has_context: bool) -> GenerationPath:
        return resolve_path(is_video_mode, has_context)

    def models_for(self, path: GenerationPath) -> list[ModelDescriptor]:
        return self.registry.models_for(path)

    def default_model_for(self, path: GenerationPath) -> str:
        return self.registry.default_model_for(path)

    def select_model(self, path: GenerationPath, requested_model_id: str | None) -> str:
        return self.selector.select(path, requested_model_id).model.id

    def timeout_for(self, path: GenerationPath, model_id: str | None) -> int:
        return self.timing.timeout_for(path, model_id)

    def progress_duration_for(self, path: GenerationPath, model_id: str | None) -> int:
        return self.timing.progress_duration_for(path, model_id)


class ModelControls:
    """Video toggle plus the model picker, kept consistent with the active path."""

    def __init__(
        self,
        resolver: PathResolver,
        *,
        is_video_mode: bool = False,
        has_context: bool = False,
        on_change: Callable[[GenerationPath, str], None] | None = None,
    ) -> None:
        self.resolver = resolver
        self.is_video_mode = is_video_mode
        self._has_context = has_context
        self.on_change = on_change
        self.path = resolver.resolve_path(is_video_mode, has_context)
        self.selected_model = resolver.default_model_for(self.path)

    def set_video_mode(self, enabled: bool) -> None:
        self.is_video_mode = bool(enabled)
        self.reconcile()

    def set_has_context(self, has_context: bool) -> None:
        self._has_context = bool(has_context)
        self.reconcile()

    def request_model(self, model_id: str) -> bool:
        """Pick a model on the active path. Returns False when it is not listed."""
        if self.resolver.registry.get(self.path, model_id) is None:
            return False
        self.selected_model = model_id
        self._notify()
        return True

    def reconcile(self) -> GenerationPath:
        path = self.resolver.resolve_path(self.is_video_mode, self._has_context)
        selected = self.resolver.select_model(path, self.selected_model)
        if path != self.path or selected != self.selected_model:
            self.path = path
            self.selected_model = selected
            self._notify()
        return self.path

    def track(self, context: Any) -> None:
        """Re-run reconciliation whenever ``context`` becomes empty or non-empty."""
        context.subscribe(lambda ctx: self.set_has_context(not ctx.is_empty))
        self.set_has_context(not context.is_empty)

    def input_for(self, prompt: str) -> GenerationInput:
        return GenerationInput(prompt=prompt, is_video_mode=self.is_video_mode, requested_model=self.selected_model)

    def models(self) -> list[ModelDescriptor]:
        return self.resolver.models_for(self.path)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.path, self.selected_model)
