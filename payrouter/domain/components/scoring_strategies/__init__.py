"""Scoring strategies, one per StrategyType, selected through an enum-keyed registry."""

from payrouter.domain.components.provider_lookup import DEFAULT_LOOKUP_TIMEOUT_SECONDS
from payrouter.domain.components.scoring_strategies.base import NEUTRAL_SCORE, ScoringStrategy
from payrouter.domain.components.scoring_strategies.cost import CostStrategy
from payrouter.domain.components.scoring_strategies.load_balancing import (
    LoadBalancingStrategy,
    LoadDistribution,
)
from payrouter.domain.components.scoring_strategies.reliability import ReliabilityStrategy
from payrouter.domain.components.scoring_strategies.rules import RulesStrategy
from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.domain.models.routing_profile import StrategyType

STRATEGY_CLASSES: dict[StrategyType, type[ScoringStrategy]] = {
    StrategyType.RULES: RulesStrategy,
    StrategyType.COST: CostStrategy,
    StrategyType.RELIABILITY: ReliabilityStrategy,
    StrategyType.LOAD_BALANCING: LoadBalancingStrategy,
}


def build_strategy_registry(
    config_source: ConfigSource,
    observability_manager: ObservabilityManager,
    provider_timeout: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
) -> dict[StrategyType, ScoringStrategy]:
    """Instantiate one strategy per StrategyType."""
    return {
        strategy_type: strategy_class(
            config_source=config_source,
            observability_manager=observability_manager,
            provider_timeout=provider_timeout,
        )
        for strategy_type, strategy_class in STRATEGY_CLASSES.items()
    }


__all__ = [
    "NEUTRAL_SCORE",
    "STRATEGY_CLASSES",
    "ScoringStrategy",
    "RulesStrategy",
    "CostStrategy",
    "ReliabilityStrategy",
    "LoadBalancingStrategy",
    "LoadDistribution",
    "build_strategy_registry",
]
