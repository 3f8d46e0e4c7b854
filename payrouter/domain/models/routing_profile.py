"""StrategyType and RoutingProfile models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

WEIGHT_TOLERANCE = 0.001


class StrategyType(str, Enum):
    """Closed set of scoring strategies.

    Each member carries a display name and a default weight. The default
    weights only apply when no profile overrides them.
    """

    RULES = "rules"
    """Business rules and provider preferences."""

    COST = "cost"
    """Transaction fees, cheapest first."""

    RELIABILITY = "reliability"
    """Success rate and latency."""

    LOAD_BALANCING = "load_balancing"
    """Configured traffic distribution weights."""

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def default_weight(self) -> float:
        return _DEFAULT_WEIGHTS[self]

    @classmethod
    def default_weights(cls) -> dict[StrategyType, float]:
        return {strategy: strategy.default_weight for strategy in cls}

    @classmethod
    def parse(cls, value: Any) -> StrategyType:
        """Parse a strategy from its value, member name or legacy alias.

        Raises:
            ValueError: If the value names no strategy.
        """
        if isinstance(value, StrategyType):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Strategy must be a string, got {type(value).__name__}")
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            valid = sorted(s.value for s in cls)
            raise ValueError(f"Unknown strategy {value!r}, expected one of {valid}") from None


_DISPLAY_NAMES = {
    StrategyType.RULES: "Rules",
    StrategyType.COST: "Cost",
    StrategyType.RELIABILITY: "Reliability",
    StrategyType.LOAD_BALANCING: "Load Balancing",
}

_DEFAULT_WEIGHTS = {
    StrategyType.RULES: 0.4,
    StrategyType.COST: 0.3,
    StrategyType.RELIABILITY: 0.2,
    StrategyType.LOAD_BALANCING: 0.1,
}

_ALIASES = {
    "success_rate": "reliability",
    "weight": "load_balancing",
    "loadbalancing": "load_balancing",
}


class RoutingProfile(BaseModel):
    """Named bundle of enabled strategies and their weights.

    Invariants enforced on construction:
    - at least one strategy is enabled
    - the weight keys are exactly the enabled strategies
    - every weight lies in [0, 1] and the weights sum to 1.0 (within 0.001)

    Example:
        ```python
        profile = RoutingProfile(
            name="cost_and_rules",
            description="Balance cost optimization with business rules",
            strategies={StrategyType.RULES, StrategyType.COST},
            weights={StrategyType.RULES: 0.6, StrategyType.COST: 0.4},
        )
        ```
    """

    name: str = Field(..., min_length=1, description="Profile identifier")
    description: str = Field(default="", description="Human-readable description")
    strategies: frozenset[StrategyType] = Field(
        ...,
        description="Strategies that contribute to the composite score",
    )
    weights: dict[StrategyType, float] = Field(
        ...,
        description="Weight per enabled strategy",
    )
    source: str = Field(
        default="custom",
        description="Where the profile came from: 'built-in' or 'custom'",
    )

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("strategies", mode="before")
    @classmethod
    def parse_strategies(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(StrategyType.parse(item) for item in v)
        return v

    @field_validator("weights", mode="before")
    @classmethod
    def parse_weights(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {StrategyType.parse(key): value for key, value in v.items()}
        return v

    @model_validator(mode="after")
    def validate_invariants(self) -> RoutingProfile:
        if not self.strategies:
            raise ValueError(f"Profile '{self.name}' must have at least one strategy")

        extra = set(self.weights) - set(self.strategies)
        if extra:
            names = sorted(s.value for s in extra)
            raise ValueError(
                f"Profile '{self.name}' has weights for strategies not in strategy list: {names}"
            )

        missing = set(self.strategies) - set(self.weights)
        if missing:
            names = sorted(s.value for s in missing)
            raise ValueError(f"Profile '{self.name}' missing weights for strategies: {names}")

        for strategy, weight in self.weights.items():
            if not 0.0 <= weight <= 1.0:
                raise ValueError(
                    f"Profile '{self.name}' weight for {strategy.value} must be between "
                    f"0.0 and 1.0, got {weight}"
                )

        total = sum(self.weights.values())
        if abs(total - 1.0) >= WEIGHT_TOLERANCE:
            raise ValueError(f"Profile '{self.name}' weights must sum to 1.0, got {total}")

        return self

    def normalized_weights(self) -> dict[StrategyType, float]:
        """Weights for every strategy type; strategies outside the profile get 0.0."""
        return {strategy: self.weights.get(strategy, 0.0) for strategy in StrategyType}

    @property
    def is_single_strategy(self) -> bool:
        return len(self.strategies) == 1

    @property
    def single_strategy(self) -> StrategyType | None:
        if self.is_single_strategy:
            return next(iter(self.strategies))
        return None

    def ordered_strategies(self) -> list[StrategyType]:
        """Enabled strategies in declaration order of StrategyType."""
        return [strategy for strategy in StrategyType if strategy in self.strategies]


def _builtin(
    name: str, description: str, weights: dict[StrategyType, float]
) -> RoutingProfile:
    return RoutingProfile(
        name=name,
        description=description,
        strategies=frozenset(weights),
        weights=weights,
        source="built-in",
    )


BALANCED_PROFILE_NAME = "balanced"

BUILTIN_PROFILES: dict[str, RoutingProfile] = {
    profile.name: profile
    for profile in (
        _builtin(
            "cost_optimized",
            "Pure cost optimization - always choose the cheapest provider",
            {StrategyType.COST: 1.0},
        ),
        _builtin(
            "rules_only",
            "Strict business rules compliance - follow configured rules exactly",
            {StrategyType.RULES: 1.0},
        ),
        _builtin(
            "reliability_focused",
            "Prioritize provider reliability and success rates",
            {StrategyType.RELIABILITY: 1.0},
        ),
        _builtin(
            "load_balancing_only",
            "Pure load balancing based on configured weights",
            {StrategyType.LOAD_BALANCING: 1.0},
        ),
        _builtin(
            "cost_and_rules",
            "Balance cost optimization with business rules",
            {StrategyType.RULES: 0.6, StrategyType.COST: 0.4},
        ),
        _builtin(
            "reliability_and_rules",
            "Prioritize reliability while respecting business rules",
            {StrategyType.RULES: 0.4, StrategyType.RELIABILITY: 0.6},
        ),
        _builtin(
            "cost_and_reliability",
            "Balance cost optimization with provider reliability",
            {StrategyType.COST: 0.6, StrategyType.RELIABILITY: 0.4},
        ),
        _builtin(
            BALANCED_PROFILE_NAME,
            "Balanced approach using all strategies with default weights",
            StrategyType.default_weights(),
        ),
        _builtin(
            "business_first",
            "Business rules first, then cost and reliability",
            {
                StrategyType.RULES: 0.6,
                StrategyType.COST: 0.25,
                StrategyType.RELIABILITY: 0.15,
            },
        ),
        _builtin(
            "performance_optimized",
            "Optimize for speed and reliability, minimal cost consideration",
            {
                StrategyType.RELIABILITY: 0.5,
                StrategyType.LOAD_BALANCING: 0.3,
                StrategyType.COST: 0.2,
            },
        ),
    )
}
