"""Domain models for the payment router."""

from payrouter.domain.models.health_state import HealthSnapshot, HealthThresholds
from payrouter.domain.models.provider_fee import FeeType, ProviderFee
from payrouter.domain.models.route_decision import (
    CompositeScoresMetadata,
    EligibilityMetadata,
    HealthCheckMetadata,
    IndividualScoresMetadata,
    ProviderEvaluation,
    ProviderHealthMetrics,
    RouteDecision,
    RoutingMetadata,
    RoutingProfileMetadata,
    RoutingState,
    ScoreRange,
    ScoreStatistics,
    ScoringResult,
    StrategyWeightsMetadata,
)
from payrouter.domain.models.routing_context import CardNetwork, RoutingContext
from payrouter.domain.models.routing_error import (
    ConfigurationUnavailableError,
    ErrorCategory,
    ProfileResolutionError,
    ProviderLookupError,
    RoutingError,
    StrategyComputationError,
)
from payrouter.domain.models.routing_profile import (
    BALANCED_PROFILE_NAME,
    BUILTIN_PROFILES,
    RoutingProfile,
    StrategyType,
)
from payrouter.domain.models.routing_rule import (
    DEFAULT_ROUTING_RULES,
    ConditionField,
    ConditionOperator,
    RoutingMode,
    RoutingRule,
    RuleAction,
    RuleCondition,
    parse_rule,
    rule_matches,
)

__all__ = [
    "CardNetwork",
    "RoutingContext",
    "FeeType",
    "ProviderFee",
    "HealthSnapshot",
    "HealthThresholds",
    "StrategyType",
    "RoutingProfile",
    "BUILTIN_PROFILES",
    "BALANCED_PROFILE_NAME",
    "RoutingMode",
    "ConditionField",
    "ConditionOperator",
    "RuleCondition",
    "RuleAction",
    "RoutingRule",
    "DEFAULT_ROUTING_RULES",
    "parse_rule",
    "rule_matches",
    "RoutingState",
    "ScoringResult",
    "ProviderEvaluation",
    "EligibilityMetadata",
    "ProviderHealthMetrics",
    "HealthCheckMetadata",
    "RoutingProfileMetadata",
    "ScoreRange",
    "CompositeScoresMetadata",
    "StrategyWeightsMetadata",
    "ScoreStatistics",
    "IndividualScoresMetadata",
    "RoutingMetadata",
    "RouteDecision",
    "ErrorCategory",
    "RoutingError",
    "StrategyComputationError",
    "ProfileResolutionError",
    "ConfigurationUnavailableError",
    "ProviderLookupError",
]
