"""Workflow transports."""

from __future__ import annotations

from ..models.registry import ModelRegistry
from ..settings import EngineSettings
from .base import CancelToken, GenerationTransport
from .dryrun import DryRunTransport
from .webhook import WebhookTransport


def build_transport(
    settings: EngineSettings,
    registry: ModelRegistry | None = None,
    dryrun_delay_s: float = 1.0,
) -> GenerationTransport:
    if settings.dryrun:
        return DryRunTransport(registry=registry, delay_s=dryrun_delay_s)
    return WebhookTransport(settings.webhook_url or "")


__all__ = ["CancelToken", "DryRunTransport", "GenerationTransport", "WebhookTransport", "build_transport"]
