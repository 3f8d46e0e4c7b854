"""RouteDecision, ProviderEvaluation and the routing audit metadata models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from payrouter.domain.models.routing_profile import StrategyType


class RoutingState(str, Enum):
    """States a routing call passes through, strictly in this order."""

    START = "start"
    ELIGIBILITY_CHECKED = "eligibility_checked"
    HEALTH_CHECKED = "health_checked"
    PROFILE_RESOLVED = "profile_resolved"
    SCORED = "scored"
    RANKED = "ranked"
    DECIDED = "decided"


class ScoringResult(BaseModel):
    """Score of one provider under one strategy, with its explanation."""

    score: float = Field(..., ge=0.0, le=1.0)
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class ProviderEvaluation(BaseModel):
    """Per-call evaluation of a single registered provider.

    Immutable once built, like the RouteDecision that carries it. The
    composite score is forced to 0.0 whenever the provider failed the
    eligibility or health gate.
    """

    provider_name: str
    registration_index: int = Field(..., ge=0)
    eligible: bool = False
    healthy: bool = False
    strategy_scores: dict[StrategyType, float] = Field(default_factory=dict)
    composite_score: float = Field(default=0.0, ge=0.0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def zero_composite_for_filtered(cls, data: Any) -> Any:
        if isinstance(data, dict) and not (data.get("eligible") and data.get("healthy")):
            return {**data, "composite_score": 0.0}
        return data


class EligibilityMetadata(BaseModel):
    total_candidates: int
    eligible_count: int
    filtered_out: list[str] = Field(default_factory=list)
    eligibility_reasons: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class ProviderHealthMetrics(BaseModel):
    is_healthy: bool
    success_rate: float | None = None
    latency_ms: int | None = None
    sample_size: int | None = None
    last_checked: str | None = None
    error: str | None = None

    model_config = ConfigDict(frozen=True)


class HealthCheckMetadata(BaseModel):
    total_providers: int
    healthy_providers: int
    unhealthy_providers: list[str] = Field(default_factory=list)
    health_metrics: dict[str, ProviderHealthMetrics] = Field(default_factory=dict)
    thresholds: dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class RoutingProfileMetadata(BaseModel):
    name: str
    description: str
    is_single_strategy: bool
    enabled_strategies: list[str]
    profile_source: str = "built-in"
    fallback_reason: str | None = None

    model_config = ConfigDict(frozen=True)


class ScoreRange(BaseModel):
    min: float
    max: float
    avg: float
    spread: float

    model_config = ConfigDict(frozen=True)


class CompositeScoresMetadata(BaseModel):
    scores: dict[str, float]
    winner: str
    winner_score: float
    score_range: ScoreRange

    model_config = ConfigDict(frozen=True)


class StrategyWeightsMetadata(BaseModel):
    weights: dict[str, float]
    is_normalized: bool
    total_weight: float
    source: str = "profile"

    model_config = ConfigDict(frozen=True)


class ScoreStatistics(BaseModel):
    min: float
    max: float
    avg: float
    standard_deviation: float

    model_config = ConfigDict(frozen=True)


class IndividualScoresMetadata(BaseModel):
    provider_scores: dict[str, dict[str, float]]
    strategy_rankings: dict[str, list[str]]
    score_statistics: dict[str, ScoreStatistics]

    model_config = ConfigDict(frozen=True)


class RoutingMetadata(BaseModel):
    """Audit bundle attached to every RouteDecision.

    Sections are None when the call ended before producing them; a call that
    stops at the eligibility gate only carries ``eligibility``.
    """

    eligibility: EligibilityMetadata | None = None
    health_check: HealthCheckMetadata | None = None
    profile: RoutingProfileMetadata | None = None
    composite_scores: CompositeScoresMetadata | None = None
    strategy_weights: StrategyWeightsMetadata | None = None
    individual_scores: IndividualScoresMetadata | None = None
    strategy_details: dict[str, dict[str, dict[str, Any]]] = Field(default_factory=dict)
    evaluations: list[ProviderEvaluation] = Field(default_factory=list)
    state_trail: list[RoutingState] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class RouteDecision(BaseModel):
    """Outcome of one routing call.

    Callers use ``selected_provider`` for control flow; everything else is
    meant for persistence and audit logs.
    """

    candidates: list[str] = Field(
        default_factory=list,
        description="Surviving provider names, best first",
    )
    strategies_used: list[str] = Field(
        default_factory=list,
        description="Display names of the strategies exercised",
    )
    selected_provider: str | None = Field(
        default=None,
        description="Chosen provider, or None when nothing was available",
    )
    reason: str = Field(..., min_length=1, description="Human-readable explanation")
    metadata: RoutingMetadata = Field(default_factory=RoutingMetadata)

    model_config = ConfigDict(frozen=True)

    @property
    def is_routed(self) -> bool:
        return self.selected_provider is not None
