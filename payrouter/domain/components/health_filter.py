"""HealthFilter component - binary reliability gate."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot, HealthThresholds
from payrouter.domain.models.route_decision import HealthCheckMetadata, ProviderHealthMetrics

HealthLookup = Callable[[PaymentProviderAdapter], Awaitable[HealthSnapshot]]

HEALTH_CHECK_CONFIG_KEY = "health_check_config"

# Config field -> threshold field. min_transactions is the older name.
_THRESHOLD_FIELDS = {
    "min_success_rate": "min_success_rate",
    "max_latency_ms": "max_latency_ms",
    "min_sample_size": "min_sample_size",
    "min_transactions": "min_sample_size",
}


class HealthResult(BaseModel):
    """Providers that passed the health gate and the metrics behind the verdicts."""

    healthy: list[Any] = Field(
        default_factory=list,
        description="Healthy provider adapters, in input order",
    )
    unhealthy: list[str] = Field(default_factory=list)
    metrics: dict[str, ProviderHealthMetrics] = Field(default_factory=dict)
    snapshots: dict[str, HealthSnapshot] = Field(
        default_factory=dict,
        description="Snapshots that were fetched successfully, by provider name",
    )
    thresholds: HealthThresholds = Field(default_factory=HealthThresholds)

    model_config = ConfigDict(frozen=True)

    @property
    def healthy_names(self) -> list[str]:
        return [provider.name for provider in self.healthy]

    def to_metadata(self) -> HealthCheckMetadata:
        return HealthCheckMetadata(
            total_providers=len(self.healthy) + len(self.unhealthy),
            healthy_providers=len(self.healthy),
            unhealthy_providers=list(self.unhealthy),
            health_metrics=dict(self.metrics),
            thresholds={
                "min_success_rate": self.thresholds.min_success_rate,
                "max_latency_ms": self.thresholds.max_latency_ms,
                "min_sample_size": self.thresholds.min_sample_size,
            },
        )


class HealthFilter:
    """Keeps providers whose success rate, latency and sample size meet thresholds.

    Thresholds are read from ``health_check_config`` on every call, through the
    view the caller pinned, so a reload takes effect on the next routing call.
    Each missing or unreadable field falls back to its default on its own.
    """

    def __init__(
        self,
        config_source: ConfigSource,
        observability_manager: ObservabilityManager,
        health_lookup: HealthLookup,
    ) -> None:
        """Initialize HealthFilter.

        Args:
            config_source: Source of the current configuration snapshot.
            observability_manager: ObservabilityManager for logging.
            health_lookup: Coroutine function returning a provider's health,
                shared with the reliability strategy.
        """
        self._config = config_source
        self._observability = observability_manager
        self._health_lookup = health_lookup

    async def load_thresholds(self, config: ConfigSource | None = None) -> HealthThresholds:
        """Read the gate thresholds from ``health_check_config``.

        Args:
            config: Configuration view pinned for the current routing call.
                Defaults to the live configuration source.

        Returns:
            HealthThresholds with defaults for every missing or invalid field.
        """
        defaults = HealthThresholds()
        raw = (config if config is not None else self._config).get(HEALTH_CHECK_CONFIG_KEY)
        if raw is None:
            await self._observability.log(
                level="INFO",
                message="No health check configuration, using default thresholds",
                context={
                    "min_success_rate": defaults.min_success_rate,
                    "max_latency_ms": defaults.max_latency_ms,
                    "min_sample_size": defaults.min_sample_size,
                },
            )
            return defaults
        if not isinstance(raw, dict):
            await self._observability.log(
                level="WARNING",
                message="Health check configuration is not a mapping, using defaults",
                context={"value_type": type(raw).__name__},
            )
            return defaults

        values: dict[str, Any] = {}
        for config_field, threshold_field in _THRESHOLD_FIELDS.items():
            if config_field not in raw or threshold_field in values:
                continue
            value = raw[config_field]
            try:
                # Validate one field at a time so a bad value only resets itself.
                HealthThresholds(**{threshold_field: value})
            except (TypeError, ValueError) as e:
                await self._observability.log(
                    level="WARNING",
                    message="Invalid health threshold, using default",
                    context={
                        "field": config_field,
                        "value": repr(value),
                        "default": getattr(defaults, threshold_field),
                        "error": str(e),
                    },
                )
                continue
            values[threshold_field] = value

        return HealthThresholds(**values)

    async def apply(
        self,
        candidates: list[PaymentProviderAdapter],
        config: ConfigSource | None = None,
    ) -> HealthResult:
        """Fetch health for every candidate concurrently and apply the thresholds.

        Args:
            candidates: Eligible providers, in registration order.
            config: Optional pinned configuration view for the thresholds.

        Returns:
            HealthResult; a provider whose lookup fails is unhealthy.
        """
        thresholds = await self.load_thresholds(config)
        outcomes = await asyncio.gather(
            *(self._check(provider) for provider in candidates)
        )

        healthy: list[PaymentProviderAdapter] = []
        unhealthy: list[str] = []
        metrics: dict[str, ProviderHealthMetrics] = {}
        snapshots: dict[str, HealthSnapshot] = {}

        for provider, (snapshot, error) in zip(candidates, outcomes):
            if snapshot is None:
                unhealthy.append(provider.name)
                metrics[provider.name] = ProviderHealthMetrics(is_healthy=False, error=error)
                continue

            snapshots[provider.name] = snapshot
            is_healthy = thresholds.is_met_by(snapshot)
            metrics[provider.name] = ProviderHealthMetrics(
                is_healthy=is_healthy,
                success_rate=snapshot.success_rate,
                latency_ms=snapshot.latency_ms,
                sample_size=snapshot.sample_size,
                last_checked=snapshot.last_checked.isoformat(),
            )
            if is_healthy:
                healthy.append(provider)
            else:
                unhealthy.append(provider.name)

        return HealthResult(
            healthy=healthy,
            unhealthy=unhealthy,
            metrics=metrics,
            snapshots=snapshots,
            thresholds=thresholds,
        )

    async def _check(
        self, provider: PaymentProviderAdapter
    ) -> tuple[HealthSnapshot | None, str | None]:
        try:
            return await self._health_lookup(provider), None
        except Exception as e:
            await self._observability.log(
                level="WARNING",
                message="Health lookup failed, treating provider as unhealthy",
                context={
                    "provider": provider.name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return None, str(e)
