"""Tests for StrategyType and RoutingProfile."""

import pytest
from pydantic import ValidationError

from payrouter.domain.models.routing_profile import (
    BALANCED_PROFILE_NAME,
    BUILTIN_PROFILES,
    RoutingProfile,
    StrategyType,
)


class TestStrategyType:
    def test_display_names_and_default_weights(self) -> None:
        assert [s.display_name for s in StrategyType] == [
            "Rules",
            "Cost",
            "Reliability",
            "Load Balancing",
        ]
        assert StrategyType.default_weights() == {
            StrategyType.RULES: 0.4,
            StrategyType.COST: 0.3,
            StrategyType.RELIABILITY: 0.2,
            StrategyType.LOAD_BALANCING: 0.1,
        }

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("cost", StrategyType.COST),
            ("COST", StrategyType.COST),
            ("load_balancing", StrategyType.LOAD_BALANCING),
            ("LOAD_BALANCING", StrategyType.LOAD_BALANCING),
            ("success_rate", StrategyType.RELIABILITY),
            ("SUCCESS_RATE", StrategyType.RELIABILITY),
        ],
    )
    def test_parse_accepts_values_names_and_aliases(
        self, value: str, expected: StrategyType
    ) -> None:
        assert StrategyType.parse(value) is expected

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown strategy"):
            StrategyType.parse("latency")


class TestRoutingProfileInvariants:
    def test_valid_profile(self) -> None:
        profile = RoutingProfile(
            name="cheap_but_safe",
            strategies=["cost", "reliability"],
            weights={"cost": 0.7, "reliability": 0.3},
        )

        assert profile.strategies == frozenset({StrategyType.COST, StrategyType.RELIABILITY})
        assert profile.source == "custom"
        assert not profile.is_single_strategy
        assert profile.single_strategy is None

    def test_empty_strategies_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least one strategy"):
            RoutingProfile(name="empty", strategies=[], weights={})

    def test_extra_weight_rejected(self) -> None:
        with pytest.raises(ValidationError, match="not in strategy list"):
            RoutingProfile(
                name="extra",
                strategies=["cost"],
                weights={"cost": 0.5, "rules": 0.5},
            )

    def test_missing_weight_rejected(self) -> None:
        with pytest.raises(ValidationError, match="missing weights"):
            RoutingProfile(
                name="missing",
                strategies=["cost", "rules"],
                weights={"cost": 1.0},
            )

    def test_weight_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError, match="between 0.0 and 1.0"):
            RoutingProfile(
                name="negative",
                strategies=["cost", "rules"],
                weights={"cost": 1.2, "rules": -0.2},
            )

    def test_weights_must_sum_to_one(self) -> None:
        with pytest.raises(ValidationError, match="sum to 1.0"):
            RoutingProfile(
                name="short",
                strategies=["cost", "rules"],
                weights={"cost": 0.5, "rules": 0.4},
            )

    def test_sum_within_tolerance_accepted(self) -> None:
        profile = RoutingProfile(
            name="thirds",
            strategies=["cost", "rules", "reliability"],
            weights={"cost": 0.333, "rules": 0.333, "reliability": 0.3335},
        )
        assert profile.weights[StrategyType.RELIABILITY] == 0.3335

    def test_normalized_weights_cover_every_strategy(self) -> None:
        profile = BUILTIN_PROFILES["cost_and_rules"]

        assert profile.normalized_weights() == {
            StrategyType.RULES: 0.6,
            StrategyType.COST: 0.4,
            StrategyType.RELIABILITY: 0.0,
            StrategyType.LOAD_BALANCING: 0.0,
        }

    def test_profile_is_immutable(self) -> None:
        profile = BUILTIN_PROFILES[BALANCED_PROFILE_NAME]
        with pytest.raises(ValidationError):
            profile.name = "other"


class TestBuiltinProfiles:
    def test_catalog_has_ten_profiles(self) -> None:
        assert set(BUILTIN_PROFILES) == {
            "cost_optimized",
            "rules_only",
            "reliability_focused",
            "load_balancing_only",
            "cost_and_rules",
            "reliability_and_rules",
            "cost_and_reliability",
            "balanced",
            "business_first",
            "performance_optimized",
        }

    @pytest.mark.parametrize("name", sorted(BUILTIN_PROFILES))
    def test_every_builtin_satisfies_invariants(self, name: str) -> None:
        profile = BUILTIN_PROFILES[name]

        assert profile.source == "built-in"
        assert profile.strategies
        assert set(profile.weights) == set(profile.strategies)
        assert abs(sum(profile.weights.values()) - 1.0) < 0.001

    def test_single_strategy_profiles(self) -> None:
        assert BUILTIN_PROFILES["cost_optimized"].single_strategy is StrategyType.COST
        assert BUILTIN_PROFILES["rules_only"].single_strategy is StrategyType.RULES
        assert (
            BUILTIN_PROFILES["reliability_focused"].single_strategy is StrategyType.RELIABILITY
        )
        assert (
            BUILTIN_PROFILES["load_balancing_only"].single_strategy
            is StrategyType.LOAD_BALANCING
        )

    def test_balanced_uses_default_weights(self) -> None:
        assert BUILTIN_PROFILES["balanced"].weights == StrategyType.default_weights()

    def test_ordered_strategies_follow_enum_order(self) -> None:
        profile = BUILTIN_PROFILES["performance_optimized"]

        assert profile.ordered_strategies() == [
            StrategyType.COST,
            StrategyType.RELIABILITY,
            StrategyType.LOAD_BALANCING,
        ]
