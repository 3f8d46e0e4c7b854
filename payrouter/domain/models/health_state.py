"""Health models for provider reliability metrics."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class HealthSnapshot(BaseModel):
    """Point-in-time reliability metrics reported by a provider.

    The same snapshot backs both the binary health gate and the continuous
    reliability score.

    Example:
        ```python
        health = HealthSnapshot(
            success_rate=0.97,
            latency_ms=200,
            sample_size=8000,
        )
        ```
    """

    success_rate: float = Field(
        ...,
        description="Fraction of successful transactions",
        ge=0.0,
        le=1.0,
    )
    latency_ms: int = Field(
        ...,
        description="Typical response latency in milliseconds",
        ge=0,
    )
    sample_size: int = Field(
        ...,
        description="Number of transactions the metrics are based on",
        ge=0,
    )
    last_checked: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the metrics were collected",
    )

    model_config = ConfigDict(frozen=True)


class HealthThresholds(BaseModel):
    """Thresholds a provider must meet to pass the health gate."""

    min_success_rate: float = Field(default=0.90, ge=0.0, le=1.0)
    max_latency_ms: int = Field(default=5000, ge=0)
    min_sample_size: int = Field(default=100, ge=0)

    model_config = ConfigDict(frozen=True)

    def is_met_by(self, health: HealthSnapshot) -> bool:
        """Return True when every threshold holds for the snapshot."""
        return (
            health.success_rate >= self.min_success_rate
            and health.latency_ms <= self.max_latency_ms
            and health.sample_size >= self.min_sample_size
        )
