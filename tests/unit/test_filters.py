"""Tests for the provider registry, eligibility gate, health gate and lookups."""

import asyncio
from decimal import Decimal

import pytest

from payrouter.domain.components.eligibility_filter import EligibilityFilter
from payrouter.domain.components.health_filter import HealthFilter
from payrouter.domain.components.provider_lookup import fetch_fee, fetch_health
from payrouter.domain.components.provider_registry import (
    ProviderRegistrationError,
    ProviderRegistry,
)
from payrouter.domain.models.routing_context import CardNetwork, RoutingContext
from payrouter.domain.models.routing_error import ErrorCategory, ProviderLookupError
from tests.fixtures.providers import FakeProvider, MockObservabilityManager, StaticConfig


def make_context(
    country: str = "US",
    network: CardNetwork = CardNetwork.VISA,
    currency: str = "USD",
) -> RoutingContext:
    return RoutingContext(
        amount=Decimal("100.00"),
        currency=currency,
        country=country,
        card_network=network,
        merchant_id="merchant-1",
    )


def health_filter(
    observability: MockObservabilityManager,
    config: dict | None = None,
    timeout: float = 1.0,
) -> HealthFilter:
    async def lookup(provider):  # type: ignore[no-untyped-def]
        return await fetch_health(provider, timeout=timeout)

    return HealthFilter(StaticConfig(config), observability, lookup)


class TestProviderRegistry:
    def test_register_preserves_order(self, seed_providers: list[FakeProvider]) -> None:
        registry = ProviderRegistry()
        for provider in seed_providers:
            registry.register(provider)

        assert registry.names() == ["StripeMock", "AdyenMock", "LocalBankMock"]
        assert len(registry) == 3
        assert "AdyenMock" in registry
        assert registry.get("AdyenMock") is seed_providers[1]

    def test_duplicate_rejected(self) -> None:
        registry = ProviderRegistry()
        registry.register(FakeProvider("StripeMock"))

        with pytest.raises(ProviderRegistrationError, match="already registered"):
            registry.register(FakeProvider("StripeMock"))

    def test_overwrite_keeps_position(self) -> None:
        registry = ProviderRegistry()
        registry.register(FakeProvider("A"))
        registry.register(FakeProvider("B"))
        replacement = FakeProvider("A", fee="0.10")

        registry.register(replacement, overwrite=True)

        assert registry.names() == ["A", "B"]
        assert registry.get("A") is replacement

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, name: object) -> None:
        provider = FakeProvider("tmp")
        provider.name = name  # type: ignore[assignment]

        with pytest.raises(ProviderRegistrationError, match="non-empty"):
            ProviderRegistry().register(provider)

    def test_unregister_and_stable_view(self) -> None:
        registry = ProviderRegistry()
        registry.register(FakeProvider("A"))
        registry.register(FakeProvider("B"))
        view = registry.providers()

        assert registry.unregister("A") is True
        assert registry.unregister("A") is False
        assert registry.names() == ["B"]
        assert [p.name for p in view] == ["A", "B"]


class TestEligibilityFilter:
    @pytest.mark.asyncio
    async def test_amex_excludes_provider_without_amex(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        result = await EligibilityFilter(observability).apply(
            make_context(network=CardNetwork.AMEX), seed_providers
        )

        assert result.eligible_names == ["StripeMock", "AdyenMock"]
        assert result.filtered_out == ["LocalBankMock"]
        assert result.reasons == {"LocalBankMock": "Does not support AMEX in USD/US"}
        assert result.total_candidates == 3
        assert observability.logs_at("DEBUG")[0]["message"] == "Providers filtered by eligibility"

    @pytest.mark.asyncio
    async def test_unknown_country_filters_everyone(
        self,
        observability: MockObservabilityManager,
    ) -> None:
        providers = [FakeProvider("A", countries={"US"}), FakeProvider("B", countries={"GB"})]

        result = await EligibilityFilter(observability).apply(
            make_context(country="XX"), providers
        )

        assert result.eligible == []
        assert result.filtered_out == ["A", "B"]

    @pytest.mark.asyncio
    async def test_capability_error_is_not_eligible(
        self, observability: MockObservabilityManager
    ) -> None:
        providers = [
            FakeProvider("Broken", supports_error=RuntimeError("catalog offline")),
            FakeProvider("Working"),
        ]

        result = await EligibilityFilter(observability).apply(make_context(), providers)

        assert result.eligible_names == ["Working"]
        assert result.reasons["Broken"] == "Capability check failed: catalog offline"
        warnings = observability.logs_at("WARNING")
        assert warnings[0]["context"]["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_metadata(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        result = await EligibilityFilter(observability).apply(make_context(), seed_providers)

        metadata = result.to_metadata()

        assert metadata.total_candidates == 3
        assert metadata.eligible_count == 3
        assert metadata.filtered_out == []
        assert not observability.logs


class TestHealthFilter:
    @pytest.mark.asyncio
    async def test_defaults_keep_healthy_providers(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        result = await health_filter(observability).apply(seed_providers)

        assert result.healthy_names == ["StripeMock", "AdyenMock", "LocalBankMock"]
        assert result.unhealthy == []
        assert result.thresholds.min_success_rate == 0.90
        assert result.metrics["AdyenMock"].success_rate == 0.97
        assert set(result.snapshots) == {"StripeMock", "AdyenMock", "LocalBankMock"}

    @pytest.mark.asyncio
    async def test_each_threshold_excludes(self, observability: MockObservabilityManager) -> None:
        providers = [
            FakeProvider("Ok"),
            FakeProvider("Flaky", success_rate=0.80),
            FakeProvider("Slow", latency_ms=6000),
            FakeProvider("New", sample_size=10),
        ]

        result = await health_filter(observability).apply(providers)

        assert result.healthy_names == ["Ok"]
        assert result.unhealthy == ["Flaky", "Slow", "New"]
        assert result.metrics["Slow"].is_healthy is False
        assert result.metrics["Slow"].latency_ms == 6000

    @pytest.mark.asyncio
    async def test_thresholds_are_inclusive(self, observability: MockObservabilityManager) -> None:
        provider = FakeProvider("Edge", success_rate=0.90, latency_ms=5000, sample_size=100)

        result = await health_filter(observability).apply([provider])

        assert result.healthy_names == ["Edge"]

    @pytest.mark.asyncio
    async def test_configured_thresholds(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        config = {"health_check_config": {"min_success_rate": 0.975, "max_latency_ms": 250}}

        result = await health_filter(observability, config).apply(seed_providers)

        assert result.healthy_names == ["StripeMock"]
        assert result.to_metadata().thresholds == {
            "min_success_rate": 0.975,
            "max_latency_ms": 250,
            "min_sample_size": 100,
        }

    @pytest.mark.asyncio
    async def test_min_transactions_alias(self, observability: MockObservabilityManager) -> None:
        config = {"health_check_config": {"min_transactions": 50_000}}

        thresholds = await health_filter(observability, config).load_thresholds()

        assert thresholds.min_sample_size == 50_000

    @pytest.mark.asyncio
    async def test_invalid_field_falls_back_alone(
        self, observability: MockObservabilityManager
    ) -> None:
        config = {"health_check_config": {"min_success_rate": 1.5, "max_latency_ms": 800}}

        thresholds = await health_filter(observability, config).load_thresholds()

        assert thresholds.min_success_rate == 0.90
        assert thresholds.max_latency_ms == 800
        warning = observability.logs_at("WARNING")[0]
        assert warning["message"] == "Invalid health threshold, using default"
        assert warning["context"]["field"] == "min_success_rate"

    @pytest.mark.asyncio
    async def test_non_mapping_config_uses_defaults(
        self, observability: MockObservabilityManager
    ) -> None:
        thresholds = await health_filter(
            observability, {"health_check_config": [0.9]}
        ).load_thresholds()

        assert thresholds.max_latency_ms == 5000
        assert observability.logs_at("WARNING")

    @pytest.mark.asyncio
    async def test_missing_config_logs_defaults(
        self, observability: MockObservabilityManager
    ) -> None:
        thresholds = await health_filter(observability).load_thresholds()

        assert thresholds.min_success_rate == 0.90
        info = observability.logs_at("INFO")[0]
        assert info["message"] == "No health check configuration, using default thresholds"
        assert info["context"] == {
            "min_success_rate": 0.90,
            "max_latency_ms": 5000,
            "min_sample_size": 100,
        }

    @pytest.mark.asyncio
    async def test_pinned_config_wins_over_live_source(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        gate = health_filter(observability, {"health_check_config": {"min_success_rate": 0.99}})
        pinned = StaticConfig({"health_check_config": {"min_success_rate": 0.5}})

        result = await gate.apply(seed_providers, config=pinned)

        assert result.thresholds.min_success_rate == 0.5
        assert result.healthy_names == ["StripeMock", "AdyenMock", "LocalBankMock"]

    @pytest.mark.asyncio
    async def test_failed_lookup_is_unhealthy(
        self, observability: MockObservabilityManager
    ) -> None:
        providers = [
            FakeProvider("Down", health_error=ConnectionError("refused")),
            FakeProvider("Up"),
        ]

        result = await health_filter(observability).apply(providers)

        assert result.healthy_names == ["Up"]
        assert result.unhealthy == ["Down"]
        assert "refused" in result.metrics["Down"].error
        assert "Down" not in result.snapshots

    @pytest.mark.asyncio
    async def test_timed_out_lookup_is_unhealthy(
        self, observability: MockObservabilityManager
    ) -> None:
        providers = [FakeProvider("Hung", delay=1.0), FakeProvider("Up")]

        result = await health_filter(observability, timeout=0.05).apply(providers)

        assert result.healthy_names == ["Up"]
        assert "timed out" in result.metrics["Hung"].error


class TestProviderLookup:
    @pytest.mark.asyncio
    async def test_fetch_fee(self) -> None:
        fee = await fetch_fee(FakeProvider("A", fee="2.50"), "USD", Decimal("100"))

        assert fee.amount == Decimal("2.50")
        assert fee.currency == "USD"

    @pytest.mark.asyncio
    async def test_fetch_fee_timeout(self) -> None:
        with pytest.raises(ProviderLookupError) as exc_info:
            await fetch_fee(FakeProvider("A", delay=1.0), "USD", Decimal("100"), timeout=0.05)

        assert exc_info.value.category == ErrorCategory.ProviderTimeout
        assert "timed out after 0.05s" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_fetch_health_wraps_errors(self) -> None:
        provider = FakeProvider("A", health_error=ValueError("bad payload"))

        with pytest.raises(ProviderLookupError, match="bad payload"):
            await fetch_health(provider)

    @pytest.mark.asyncio
    async def test_wrong_return_type(self) -> None:
        provider = FakeProvider("A")

        async def not_a_snapshot():  # type: ignore[no-untyped-def]
            return {"success_rate": 0.99}

        provider.health_snapshot = not_a_snapshot  # type: ignore[method-assign]

        with pytest.raises(ProviderLookupError, match="returned dict"):
            await fetch_health(provider)

    @pytest.mark.asyncio
    async def test_lookups_run_concurrently(self) -> None:
        providers = [FakeProvider(f"P{i}", delay=0.2) for i in range(5)]
        loop = asyncio.get_running_loop()

        started = loop.time()
        await asyncio.gather(*(fetch_health(p) for p in providers))

        assert loop.time() - started < 0.8
