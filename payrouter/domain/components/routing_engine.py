"""CompositeRoutingEngine component - filter, score and rank payment providers."""

from __future__ import annotations

import asyncio
import contextlib
import statistics
from collections.abc import Mapping
from datetime import datetime
from functools import partial

from payrouter.domain.components.eligibility_filter import EligibilityFilter, EligibilityResult
from payrouter.domain.components.health_filter import HealthFilter, HealthLookup
from payrouter.domain.components.profile_catalog import ProfileCatalog, ProfileResolution
from payrouter.domain.components.provider_lookup import (
    DEFAULT_LOOKUP_TIMEOUT_SECONDS,
    fetch_health,
)
from payrouter.domain.components.provider_registry import ProviderRegistry
from payrouter.domain.components.scoring_strategies import (
    NEUTRAL_SCORE,
    ReliabilityStrategy,
    ScoringStrategy,
    build_strategy_registry,
)
from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.route_decision import (
    CompositeScoresMetadata,
    IndividualScoresMetadata,
    ProviderEvaluation,
    RouteDecision,
    RoutingMetadata,
    RoutingState,
    ScoreRange,
    ScoreStatistics,
    ScoringResult,
    StrategyWeightsMetadata,
)
from payrouter.domain.models.routing_context import RoutingContext
from payrouter.domain.models.routing_error import StrategyComputationError
from payrouter.domain.models.routing_profile import (
    BALANCED_PROFILE_NAME,
    WEIGHT_TOLERANCE,
    RoutingProfile,
    StrategyType,
)

NO_ELIGIBLE_PROVIDERS = "No eligible providers found"
NO_HEALTHY_PROVIDERS = "No healthy providers found"

# Eligibility is reported as rules work and the health gate as reliability work,
# so these two always lead strategies_used.
GATE_STRATEGIES = (StrategyType.RULES, StrategyType.RELIABILITY)


class CompositeRoutingEngine:
    """Chooses a payment provider for a transaction.

    Each call runs: eligibility gate, health gate, profile resolution,
    concurrent scoring by the profile's strategies, weighted composite score
    and ranking. Calls share no mutable state with each other. Each call pins
    the configuration snapshot once, on entry, and every stage reads from
    that pinned view; a swap published mid-call applies to later calls only.

    ``route`` never raises. Gate exits and internal failures come back as a
    RouteDecision with ``selected_provider=None`` and an explanatory reason.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config_source: ConfigSource,
        observability_manager: ObservabilityManager,
        strategies: Mapping[StrategyType, ScoringStrategy] | None = None,
        profile_catalog: ProfileCatalog | None = None,
        provider_timeout: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
        default_profile: str = BALANCED_PROFILE_NAME,
    ) -> None:
        """Initialize CompositeRoutingEngine.

        Args:
            registry: Registered providers, in registration order.
            config_source: Source of the current configuration snapshot.
            observability_manager: ObservabilityManager for logging and events.
            strategies: Strategy per StrategyType. Defaults to the built-in four.
            profile_catalog: Profile resolution. Defaults to a catalog over
                ``config_source``.
            provider_timeout: Upper bound in seconds for one provider lookup.
            default_profile: Profile used when configuration names none.
        """
        self._registry = registry
        self._config = config_source
        self._observability = observability_manager
        self._strategies = dict(
            strategies
            or build_strategy_registry(
                config_source, observability_manager, provider_timeout=provider_timeout
            )
        )
        missing = [s.value for s in StrategyType if s not in self._strategies]
        if missing:
            raise ValueError(f"No strategy registered for: {missing}")

        self._profiles = profile_catalog or ProfileCatalog(
            config_source, observability_manager, default_profile=default_profile
        )
        self._eligibility = EligibilityFilter(observability_manager)
        self._health = HealthFilter(
            config_source,
            observability_manager,
            health_lookup=self._health_lookup(provider_timeout),
        )

    @property
    def profile_catalog(self) -> ProfileCatalog:
        """Catalog used to resolve the profile of each call."""
        return self._profiles

    @property
    def strategies(self) -> dict[StrategyType, ScoringStrategy]:
        """Copy of the strategy registry, keyed by StrategyType."""
        return dict(self._strategies)

    def _health_lookup(self, provider_timeout: float) -> HealthLookup:
        reliability = self._strategies[StrategyType.RELIABILITY]
        if isinstance(reliability, ReliabilityStrategy):
            return reliability.fetch_health
        return partial(fetch_health, timeout=provider_timeout)

    async def route(self, context: RoutingContext) -> RouteDecision:
        """Route one transaction.

        Args:
            context: Transaction to route.

        Returns:
            RouteDecision. ``selected_provider`` is None when no provider
            survived the gates or the call failed internally.
        """
        trail: list[RoutingState] = [RoutingState.START]
        try:
            return await self._route(context, trail)
        except Exception as e:
            # The caller must always get a decision; a failing logger cannot change that.
            with contextlib.suppress(Exception):
                await self._observability.log(
                    level="ERROR",
                    message="Routing failed unexpectedly",
                    context={
                        "merchant_id": context.merchant_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "state": trail[-1].value,
                    },
                )
                await self._observability.emit_event(
                    event_type="routing_failed",
                    payload={
                        "merchant_id": context.merchant_id,
                        "reason": "internal_error",
                        "error": str(e),
                    },
                    metadata={"timestamp": datetime.utcnow().isoformat()},
                )
            return RouteDecision(
                candidates=[],
                strategies_used=[],
                selected_provider=None,
                reason=f"Routing failed: {e}",
                metadata=RoutingMetadata(state_trail=trail),
            )

    async def list_profiles(self) -> list[str]:
        """Names of every profile the catalog can currently resolve.

        Returns:
            Built-in profile names followed by valid custom ones.
        """
        return await self._profiles.list_profiles()

    async def _route(self, context: RoutingContext, trail: list[RoutingState]) -> RouteDecision:
        config = self._config.pin()
        providers = self._registry.providers()

        eligibility = await self._eligibility.apply(context, providers)
        eligible_names = {provider.name for provider in eligibility.eligible}
        trail.append(RoutingState.ELIGIBILITY_CHECKED)

        if not eligibility.eligible:
            trail.append(RoutingState.DECIDED)
            await self._report_gate_exit(context, "no_eligible_providers", eligibility.filtered_out)
            return RouteDecision(
                candidates=[],
                strategies_used=[StrategyType.RULES.display_name],
                selected_provider=None,
                reason=NO_ELIGIBLE_PROVIDERS,
                metadata=RoutingMetadata(
                    eligibility=eligibility.to_metadata(),
                    evaluations=_evaluations(providers, eligible_names, set()),
                    state_trail=trail,
                ),
            )

        health = await self._health.apply(eligibility.eligible, config=config)
        healthy_names = set(health.healthy_names)
        trail.append(RoutingState.HEALTH_CHECKED)

        if not health.healthy:
            trail.append(RoutingState.DECIDED)
            await self._report_gate_exit(context, "no_healthy_providers", health.unhealthy)
            return RouteDecision(
                candidates=[],
                strategies_used=[s.display_name for s in GATE_STRATEGIES],
                selected_provider=None,
                reason=NO_HEALTHY_PROVIDERS,
                metadata=RoutingMetadata(
                    eligibility=eligibility.to_metadata(),
                    health_check=health.to_metadata(),
                    evaluations=_evaluations(providers, eligible_names, healthy_names),
                    state_trail=trail,
                ),
            )

        resolution = await self._profiles.resolve(config)
        profile = resolution.profile
        trail.append(RoutingState.PROFILE_RESOLVED)

        survivors = health.healthy
        enabled = profile.ordered_strategies()
        outcomes = await asyncio.gather(
            *(
                self._run_strategy(strategy_type, context, survivors, health.snapshots, config)
                for strategy_type in enabled
            )
        )
        scores: dict[StrategyType, dict[str, ScoringResult]] = dict(zip(enabled, outcomes))
        trail.append(RoutingState.SCORED)

        weights = profile.normalized_weights()
        strategy_scores: dict[str, dict[StrategyType, float]] = {}
        composite: dict[str, float] = {}
        for provider in survivors:
            per_strategy = {s: scores[s][provider.name].score for s in enabled}
            strategy_scores[provider.name] = per_strategy
            composite[provider.name] = sum(weights[s] * score for s, score in per_strategy.items())

        # sorted() is stable and survivors are in registration order, so ties keep it.
        ranked = sorted(survivors, key=lambda p: -composite[p.name])
        trail.append(RoutingState.RANKED)

        winner = ranked[0].name
        reason = (
            f"Selected {winner} using profile '{profile.name}' "
            f"({_describe_mode(profile)}) with composite score {composite[winner]:.4f}"
        )
        trail.append(RoutingState.DECIDED)

        decision = RouteDecision(
            candidates=[p.name for p in ranked],
            strategies_used=_strategies_used(profile),
            selected_provider=winner,
            reason=reason,
            metadata=RoutingMetadata(
                eligibility=eligibility.to_metadata(),
                health_check=health.to_metadata(),
                profile=resolution.to_metadata(),
                composite_scores=_composite_metadata(composite, winner),
                strategy_weights=_weights_metadata(resolution),
                individual_scores=_individual_metadata(survivors, enabled, scores),
                strategy_details={
                    s.display_name: {
                        name: {**result.details, "score": result.score}
                        for name, result in scores[s].items()
                    }
                    for s in enabled
                },
                evaluations=_evaluations(
                    providers, eligible_names, healthy_names, strategy_scores, composite
                ),
                state_trail=trail,
            ),
        )

        await self._observability.log(
            level="INFO",
            message=f"Routing decision made: {winner}",
            context={
                "merchant_id": context.merchant_id,
                "selected_provider": winner,
                "profile": profile.name,
                "composite_score": round(composite[winner], 4),
                "candidates": decision.candidates,
            },
        )
        await self._observability.emit_event(
            event_type="route_decided",
            payload={
                "merchant_id": context.merchant_id,
                "selected_provider": winner,
                "profile": profile.name,
                "profile_fallback": resolution.is_fallback,
                "candidates": decision.candidates,
                "strategies_used": decision.strategies_used,
            },
            metadata={
                "timestamp": datetime.utcnow().isoformat(),
                "eligible_count": len(eligibility.eligible),
                "healthy_count": len(survivors),
            },
        )
        return decision

    async def _run_strategy(
        self,
        strategy_type: StrategyType,
        context: RoutingContext,
        providers: list[PaymentProviderAdapter],
        health: Mapping[str, HealthSnapshot],
        config: ConfigSource,
    ) -> dict[str, ScoringResult]:
        """Run one strategy; if it fails as a whole every provider gets the neutral score."""
        strategy = self._strategies[strategy_type]
        try:
            results = await strategy.evaluate(context, providers, health=health, config=config)
        except Exception as e:
            error = StrategyComputationError(
                f"{strategy_type.display_name} strategy failed: {e}",
                details={"strategy": strategy_type.value, "error_type": type(e).__name__},
            )
            await self._observability.log(
                level="WARNING",
                message="Strategy failed, using neutral scores",
                context={
                    "strategy": strategy_type.value,
                    "category": error.category.value,
                    "error": str(error),
                },
            )
            return strategy.neutral_results(providers, str(error))

        missing = [p for p in providers if p.name not in results]
        if missing:
            await self._observability.log(
                level="WARNING",
                message="Strategy returned no score for some providers, using neutral scores",
                context={"strategy": strategy_type.value, "providers": [p.name for p in missing]},
            )
            results = {**results, **strategy.neutral_results(missing, "no score returned")}
        return results

    async def _report_gate_exit(
        self, context: RoutingContext, reason: str, filtered: list[str]
    ) -> None:
        await self._observability.log(
            level="WARNING",
            message="No provider available for transaction",
            context={
                "merchant_id": context.merchant_id,
                "reason": reason,
                "filtered_out": filtered,
            },
        )
        await self._observability.emit_event(
            event_type="routing_failed",
            payload={
                "merchant_id": context.merchant_id,
                "reason": reason,
                "filtered_out": filtered,
            },
            metadata={"timestamp": datetime.utcnow().isoformat()},
        )


def _evaluations(
    providers: list[PaymentProviderAdapter],
    eligible: set[str],
    healthy: set[str],
    strategy_scores: Mapping[str, dict[StrategyType, float]] | None = None,
    composite: Mapping[str, float] | None = None,
) -> list[ProviderEvaluation]:
    strategy_scores = strategy_scores or {}
    composite = composite or {}
    return [
        ProviderEvaluation(
            provider_name=provider.name,
            registration_index=i,
            eligible=provider.name in eligible,
            healthy=provider.name in healthy,
            strategy_scores=strategy_scores.get(provider.name, {}),
            composite_score=composite.get(provider.name, 0.0),
        )
        for i, provider in enumerate(providers)
    ]


def _strategies_used(profile: RoutingProfile) -> list[str]:
    used = [s.display_name for s in GATE_STRATEGIES]
    used.extend(
        s.display_name for s in profile.ordered_strategies() if s not in GATE_STRATEGIES
    )
    return used


def _describe_mode(profile: RoutingProfile) -> str:
    single = profile.single_strategy
    if single is not None:
        return f"single strategy ({single.display_name})"
    return "multi-strategy: " + ", ".join(s.display_name for s in profile.ordered_strategies())


def _composite_metadata(composite: dict[str, float], winner: str) -> CompositeScoresMetadata:
    values = list(composite.values())
    return CompositeScoresMetadata(
        scores=dict(composite),
        winner=winner,
        winner_score=composite[winner],
        score_range=ScoreRange(
            min=min(values),
            max=max(values),
            avg=statistics.fmean(values),
            spread=max(values) - min(values),
        ),
    )


def _weights_metadata(resolution: ProfileResolution) -> StrategyWeightsMetadata:
    profile = resolution.profile
    total = sum(profile.weights.values())
    return StrategyWeightsMetadata(
        weights={s.display_name: profile.weights[s] for s in profile.ordered_strategies()},
        is_normalized=abs(total - 1.0) < WEIGHT_TOLERANCE,
        total_weight=total,
        source="fallback" if resolution.is_fallback else profile.source,
    )


def _individual_metadata(
    providers: list[PaymentProviderAdapter],
    enabled: list[StrategyType],
    scores: dict[StrategyType, dict[str, ScoringResult]],
) -> IndividualScoresMetadata:
    provider_scores = {
        p.name: {s.display_name: scores[s][p.name].score for s in enabled} for p in providers
    }
    rankings: dict[str, list[str]] = {}
    stats: dict[str, ScoreStatistics] = {}
    for s in enabled:
        by_provider = [(p.name, scores[s][p.name].score) for p in providers]
        rankings[s.display_name] = [
            name for name, _ in sorted(by_provider, key=lambda item: -item[1])
        ]
        values = [score for _, score in by_provider] or [NEUTRAL_SCORE]
        stats[s.display_name] = ScoreStatistics(
            min=min(values),
            max=max(values),
            avg=statistics.fmean(values),
            standard_deviation=statistics.pstdev(values),
        )
    return IndividualScoresMetadata(
        provider_scores=provider_scores,
        strategy_rankings=rankings,
        score_statistics=stats,
    )
