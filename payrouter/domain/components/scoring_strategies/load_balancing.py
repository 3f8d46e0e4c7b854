"""Load-balancing scoring strategy - configured traffic distribution weights."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from payrouter.domain.components.scoring_strategies.base import NEUTRAL_SCORE, ScoringStrategy
from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.route_decision import ScoringResult
from payrouter.domain.models.routing_context import RoutingContext
from payrouter.domain.models.routing_profile import StrategyType

ROUTING_WEIGHTS_KEY = "routing_weights"

DEFAULT_ROUTING_WEIGHTS: dict[str, float] = {
    "StripeMock": 60.0,
    "AdyenMock": 30.0,
    "LocalBankMock": 10.0,
}

MAX_BALANCED_SHARE = 70.0
MAX_BALANCED_SPREAD = 60.0


def coerce_weight(value: Any) -> float:
    """Numbers and numeric strings count; anything else is 0. Negatives clamp to 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        weight = float(value)
    elif isinstance(value, str):
        try:
            weight = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(weight):
        return 0.0
    return max(0.0, weight)


def is_balanced(percentages: list[float]) -> bool:
    """No provider above 70% of traffic and at most 60 points between extremes."""
    if not percentages:
        return True
    highest, lowest = max(percentages), min(percentages)
    return highest <= MAX_BALANCED_SHARE and (highest - lowest) <= MAX_BALANCED_SPREAD


class ProviderLoadInfo(BaseModel):
    provider_name: str
    weight: float
    percentage: float

    model_config = ConfigDict(frozen=True)


class LoadDistribution(BaseModel):
    """Share of traffic each provider would receive under the configured weights."""

    providers: list[ProviderLoadInfo] = Field(default_factory=list)
    total_weight: float = 0.0
    is_balanced: bool = True

    model_config = ConfigDict(frozen=True)

    def highest(self) -> ProviderLoadInfo | None:
        return max(self.providers, key=lambda p: p.percentage, default=None)

    def lowest(self) -> ProviderLoadInfo | None:
        return min(self.providers, key=lambda p: p.percentage, default=None)


class LoadBalancingStrategy(ScoringStrategy):
    """Scores providers by ``weight / max_weight`` from ``routing_weights``.

    A provider missing from the weight map scores 0.0. When the map is empty
    or every weight is zero all providers get the neutral score. With no
    ``routing_weights`` key at all the built-in default weights apply.
    """

    strategy_type = StrategyType.LOAD_BALANCING

    async def load_weights(self, config: ConfigSource | None = None) -> dict[str, float]:
        """Read ``routing_weights`` as provider name to non-negative weight.

        Args:
            config: Configuration view pinned for the current routing call.
                Defaults to the live configuration source.

        Returns:
            Weight per provider name. Unreadable weights count as 0.0.
        """
        raw = self._source(config).get(ROUTING_WEIGHTS_KEY)
        if raw is None:
            await self._observability.log(
                level="INFO",
                message="No routing weights configured, using default weights",
                context={"strategy": self.strategy_type.value},
            )
            return dict(DEFAULT_ROUTING_WEIGHTS)
        if not isinstance(raw, dict):
            await self._warn(
                "Routing weights configuration is not a mapping, ignoring it",
                value_type=type(raw).__name__,
            )
            return {}
        return {str(name): coerce_weight(value) for name, value in raw.items()}

    async def evaluate(
        self,
        context: RoutingContext,
        providers: list[PaymentProviderAdapter],
        health: Mapping[str, HealthSnapshot] | None = None,
        config: ConfigSource | None = None,
    ) -> dict[str, ScoringResult]:
        weights = await self.load_weights(config)
        max_weight = max(weights.values(), default=0.0)
        total_weight = sum(weights.values())
        percentages = {
            name: (weight / total_weight * 100 if total_weight > 0 else 0.0)
            for name, weight in weights.items()
        }
        balanced = is_balanced(list(percentages.values()))

        results: dict[str, ScoringResult] = {}
        for provider in providers:
            weight = weights.get(provider.name, 0.0)
            if max_weight <= 0:
                score = NEUTRAL_SCORE
            else:
                score = weight / max_weight
            results[provider.name] = ScoringResult(
                score=max(0.0, min(1.0, score)),
                details={
                    "provider_weight": weight,
                    "max_weight": max_weight,
                    "total_weight": total_weight,
                    "weight_percentage": f"{percentages.get(provider.name, 0.0):.1f}%",
                    "all_weights": dict(weights),
                    "is_balanced": balanced,
                },
            )
        return results

    async def load_distribution(
        self,
        providers: list[PaymentProviderAdapter],
        config: ConfigSource | None = None,
    ) -> LoadDistribution:
        """Traffic share per provider under the current weights.

        Args:
            providers: Providers to report on, in the order given.
            config: Optional pinned configuration view.

        Returns:
            LoadDistribution with one entry per provider.
        """
        weights = await self.load_weights(config)
        total_weight = sum(weights.values())
        infos = [
            ProviderLoadInfo(
                provider_name=provider.name,
                weight=weights.get(provider.name, 0.0),
                percentage=(
                    weights.get(provider.name, 0.0) / total_weight * 100
                    if total_weight > 0
                    else 0.0
                ),
            )
            for provider in providers
        ]
        return LoadDistribution(
            providers=infos,
            total_weight=total_weight,
            is_balanced=is_balanced([info.percentage for info in infos]),
        )
