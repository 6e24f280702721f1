from __future__ import annotations

import pytest

from fcinq_engine.models.paths import GenerationPath
from fcinq_engine.models.registry import TIER_PRO, ModelDescriptor, ModelRegistry
from fcinq_engine.models.selectors import PathResolver
from fcinq_engine.pricing.latency import TimingPolicy


def test_timeout_for_premium_video_model() -> None:
    assert PathResolver().timeout_for(GenerationPath.I2V, "veo3") == 300_000


@pytest.mark.parametrize("model_id", ["nano-banana", "nano-banana-pro", "veo3", "anything", None])
def test_timeout_for_image_paths_is_baseline(model_id: str | None) -> None:
    resolver = PathResolver()
    assert resolver.timeout_for(GenerationPath.T2I, model_id) == 120_000
    assert resolver.timeout_for(GenerationPath.I2I, model_id) == 120_000


def test_timeout_for_standard_video_model() -> None:
    assert PathResolver().timeout_for(GenerationPath.T2V, "kling") == 180_000


def test_timeout_for_unknown_ids_uses_premium_markers() -> None:
    resolver = PathResolver()
    assert resolver.timeout_for(GenerationPath.T2V, "veo3-fast-preview") == 300_000
    assert resolver.timeout_for(GenerationPath.I2V, "hailuo-pro") == 300_000
    assert resolver.timeout_for(GenerationPath.I2V, "hailuo") == 180_000


def test_progress_durations_by_path_and_tier() -> None:
    resolver = PathResolver()
    assert resolver.progress_duration_for(GenerationPath.T2I, "nano-banana") == 25
    assert resolver.progress_duration_for(GenerationPath.I2I, "nano-banana-edit") == 30
    assert resolver.progress_duration_for(GenerationPath.T2V, "kling") == 45
    assert resolver.progress_duration_for(GenerationPath.T2V, "sora2-t2v-pro") == 90
    assert resolver.progress_duration_for(GenerationPath.I2V, "veo3") == 135


def test_timing_policy_overrides() -> None:
    policy = TimingPolicy(ModelRegistry(), image_timeout_ms=10, video_timeout_ms=20, premium_video_timeout_ms=30)
    assert policy.timeout_for(GenerationPath.T2I, "nano-banana") == 10
    assert policy.timeout_for(GenerationPath.T2V, "kling") == 20
    assert policy.timeout_for(GenerationPath.T2V, "veo3") == 30


def test_premium_tier_is_read_from_the_active_path() -> None:
    base = ModelRegistry()
    models = {path: base.models_for(path) for path in GenerationPath}
    models[GenerationPath.T2I] = models[GenerationPath.T2I] + [
        ModelDescriptor("studio-max", "Studio Max", 0.2, TIER_PRO),
    ]
    policy = TimingPolicy(ModelRegistry(models=models))

    assert policy.registry.is_premium(GenerationPath.T2I, "studio-max")
    assert not policy.registry.is_premium(GenerationPath.T2V, "studio-max")
    assert policy.timeout_for(GenerationPath.T2V, "studio-max") == 180_000
    assert policy.progress_duration_for(GenerationPath.T2V, "studio-max") == 45
