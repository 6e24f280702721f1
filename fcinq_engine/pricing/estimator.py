"""Cost estimation and the running session total."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..models.paths import GenerationPath
from ..models.registry import ModelRegistry


IMAGES_PER_REQUEST = 4


@dataclass(frozen=True)
class CostEstimate:
    unit_price_usd: float | None
    units: int
    total_usd: float | None


class PricingEstimator:
    def __init__(self, registry: ModelRegistry | None = None) -> None:
        self.registry = registry or ModelRegistry()

    def estimate(self, path: GenerationPath, model_id: str | None) -> CostEstimate:
        descriptor = self.registry.get(path, model_id)
        units = IMAGES_PER_REQUEST if path is GenerationPath.T2I else 1
        if descriptor is None:
            return CostEstimate(None, units, None)
        return CostEstimate(
            unit_price_usd=descriptor.price,
            units=units,
            total_usd=round(descriptor.price * units, 6),
        )


@dataclass
class SessionCostLedger:
    """Running total of ``cost.current`` across successful generations.

    The workflow's ``cost.session`` figure is kept for reference only; the
    client total always accumulates per-request costs.
    """

    total_usd: float = 0.0
    last_reported_session_usd: float | None = None
    history: list[float] = field(default_factory=list)

    def record(self, current: float | None, session: float | None = None) -> float:
        if session is not None:
            self.last_reported_session_usd = float(session)
        if current is None:
            return self.total_usd
        amount = float(current)
        self.history.append(amount)
        self.total_usd = round(self.total_usd + amount, 6)
        return self.total_usd

    def snapshot(self) -> dict[str, Any]:
        return {
            "session_total_usd": self.total_usd,
            "requests": len(self.history),
            "reported_session_usd": self.last_reported_session_usd,
        }
