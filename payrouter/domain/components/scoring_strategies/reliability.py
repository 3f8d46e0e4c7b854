"""Reliability scoring strategy - success rate and latency."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

from payrouter.domain.components.provider_lookup import fetch_health
from payrouter.domain.components.scoring_strategies.base import NEUTRAL_SCORE, ScoringStrategy
from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.route_decision import ScoringResult
from payrouter.domain.models.routing_context import RoutingContext
from payrouter.domain.models.routing_profile import StrategyType

SUCCESS_RATE_WEIGHT = 0.7
LATENCY_WEIGHT = 0.3


class ReliabilityStrategy(ScoringStrategy):
    """Scores providers by ``0.7 * success_rate + 0.3 * latency_score``.

    Latency is min-max normalized across the providers of the call that
    reported health (lowest latency scores 1.0). ``fetch_health`` is also the
    lookup behind the health gate, so both read the same metrics.
    """

    strategy_type = StrategyType.RELIABILITY

    async def fetch_health(self, provider: PaymentProviderAdapter) -> HealthSnapshot:
        return await fetch_health(provider, timeout=self._provider_timeout)

    async def evaluate(
        self,
        context: RoutingContext,
        providers: list[PaymentProviderAdapter],
        health: Mapping[str, HealthSnapshot] | None = None,
        config: ConfigSource | None = None,
    ) -> dict[str, ScoringResult]:
        known = dict(health or {})
        missing = [provider for provider in providers if provider.name not in known]
        fetched = await asyncio.gather(*(self._safe_fetch(provider) for provider in missing))
        errors: dict[str, str] = {}
        for provider, (snapshot, error) in zip(missing, fetched):
            if snapshot is not None:
                known[provider.name] = snapshot
            else:
                errors[provider.name] = error or "unknown error"

        latencies = [known[p.name].latency_ms for p in providers if p.name in known]
        min_latency = min(latencies) if latencies else 0
        max_latency = max(latencies) if latencies else 0

        results: dict[str, ScoringResult] = {}
        for provider in providers:
            snapshot = known.get(provider.name)
            if snapshot is None:
                results[provider.name] = ScoringResult(
                    score=NEUTRAL_SCORE,
                    details={"neutral": True, "error": errors.get(provider.name)},
                )
                continue

            if max_latency == min_latency:
                latency_score = 1.0
            else:
                latency_score = 1.0 - (snapshot.latency_ms - min_latency) / (
                    max_latency - min_latency
                )
            score = SUCCESS_RATE_WEIGHT * snapshot.success_rate + LATENCY_WEIGHT * latency_score
            results[provider.name] = ScoringResult(
                score=max(0.0, min(1.0, score)),
                details={
                    "success_rate": snapshot.success_rate,
                    "latency_ms": snapshot.latency_ms,
                    "latency_score": round(latency_score, 4),
                    "sample_size": snapshot.sample_size,
                    "success_rate_weight": SUCCESS_RATE_WEIGHT,
                    "latency_weight": LATENCY_WEIGHT,
                },
            )
        return results

    async def _safe_fetch(
        self, provider: PaymentProviderAdapter
    ) -> tuple[HealthSnapshot | None, str | None]:
        try:
            return await self.fetch_health(provider), None
        except Exception as e:
            await self._warn(
                "Health lookup failed, using neutral reliability score",
                provider=provider.name,
                error=str(e),
            )
            return None, str(e)
