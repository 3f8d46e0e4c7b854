"""ScoringStrategy base class shared by the four scoring strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from payrouter.domain.components.provider_lookup import DEFAULT_LOOKUP_TIMEOUT_SECONDS
from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.route_decision import ScoringResult
from payrouter.domain.models.routing_context import RoutingContext
from payrouter.domain.models.routing_profile import StrategyType

NEUTRAL_SCORE = 0.5


class ScoringStrategy(ABC):
    """Scores every surviving provider in [0, 1] for one criterion.

    ``evaluate`` is the batch entry point used by the engine: it scores all
    providers of one routing call at once, so normalization across providers
    needs a single round of provider lookups. Failures that concern one
    provider are absorbed here; anything escaping ``evaluate`` is treated by
    the engine as a failure of the whole strategy.
    """

    strategy_type: StrategyType

    def __init__(
        self,
        config_source: ConfigSource,
        observability_manager: ObservabilityManager,
        provider_timeout: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize a scoring strategy.

        Args:
            config_source: Source of the current configuration snapshot.
            observability_manager: ObservabilityManager for logging.
            provider_timeout: Upper bound in seconds for one provider lookup.
        """
        self._config = config_source
        self._observability = observability_manager
        self._provider_timeout = provider_timeout

    @property
    def display_name(self) -> str:
        return self.strategy_type.display_name

    @abstractmethod
    async def evaluate(
        self,
        context: RoutingContext,
        providers: list[PaymentProviderAdapter],
        health: Mapping[str, HealthSnapshot] | None = None,
        config: ConfigSource | None = None,
    ) -> dict[str, ScoringResult]:
        """Score all providers for this routing call.

        Args:
            context: Transaction being routed.
            providers: Providers that passed eligibility and health.
            health: Health snapshots already fetched during this call, by
                provider name. Strategies that need health data reuse them.
            config: Configuration view pinned for this routing call. Strategies
                read every setting from it so one call never mixes two
                configuration versions. Defaults to the live source.

        Returns:
            ScoringResult per provider name, one for every provider given.
        """
        ...

    async def score(
        self,
        context: RoutingContext,
        provider: PaymentProviderAdapter,
        all_providers: list[PaymentProviderAdapter],
    ) -> float:
        """Score a single provider relative to ``all_providers``."""
        peers = all_providers if provider in all_providers else [*all_providers, provider]
        results = await self.evaluate(context, peers)
        result = results.get(provider.name)
        return result.score if result is not None else NEUTRAL_SCORE

    async def explain(
        self,
        context: RoutingContext,
        provider: PaymentProviderAdapter,
        score: float,
        all_providers: list[PaymentProviderAdapter] | None = None,
    ) -> dict[str, Any]:
        """Explanation map for one provider's score, as stored in audit metadata."""
        peers = list(all_providers or [provider])
        if provider not in peers:
            peers.append(provider)
        results = await self.evaluate(context, peers)
        result = results.get(provider.name)
        details = dict(result.details) if result is not None else {}
        details["score"] = score
        return details

    def neutral_results(
        self, providers: list[PaymentProviderAdapter], reason: str
    ) -> dict[str, ScoringResult]:
        """Give every provider the neutral score.

        Args:
            providers: Providers to score.
            reason: Why no real score is available, stored in the details.

        Returns:
            Neutral ScoringResult per provider name.
        """
        return {
            provider.name: ScoringResult(
                score=NEUTRAL_SCORE, details={"neutral": True, "reason": reason}
            )
            for provider in providers
        }

    def _source(self, config: ConfigSource | None) -> ConfigSource:
        return config if config is not None else self._config

    async def _warn(self, message: str, **context: Any) -> None:
        await self._observability.log(
            level="WARNING",
            message=message,
            context={"strategy": self.strategy_type.value, **context},
        )
