"""End-to-end routing through PaymentRouter with in-memory providers."""

import asyncio
from decimal import Decimal

import pytest

from payrouter import CardNetwork, PaymentRouter, RoutingContext
from payrouter.domain.models.route_decision import RoutingState
from tests.fixtures.providers import FakeProvider, MockObservabilityManager

pytestmark = pytest.mark.integration


def make_context(
    country: str = "US",
    network: CardNetwork = CardNetwork.VISA,
    bin_prefix: str | None = None,
) -> RoutingContext:
    return RoutingContext(
        amount=Decimal("100.00"),
        currency="USD",
        country=country,
        card_network=network,
        bin_prefix=bin_prefix,
        merchant_id="merchant-123",
    )


async def make_router(
    providers: list[FakeProvider],
    observability: MockObservabilityManager,
    **config: object,
) -> PaymentRouter:
    router = PaymentRouter(observability_manager=observability)
    for key, value in config.items():
        await router.update_configuration(key, value)
    for provider in providers:
        await router.register_provider(provider)
    return router


class TestRoutingScenarios:
    @pytest.mark.asyncio
    async def test_cost_optimized_picks_cheapest(
        self, observability: MockObservabilityManager
    ) -> None:
        router = await make_router(
            [FakeProvider("X", fee="3.00"), FakeProvider("Y", fee="2.00")],
            observability,
            routing_profile="cost_optimized",
        )

        decision = await router.route(make_context())

        assert decision.selected_provider == "Y"
        assert decision.candidates == ["Y", "X"]
        assert decision.metadata.composite_scores.scores == {"X": 0.0, "Y": 1.0}
        cost_details = decision.metadata.strategy_details["Cost"]["Y"]
        assert cost_details["provider_fee"] == "2.00"
        assert cost_details["min_fee"] == "2.00"
        assert cost_details["max_fee"] == "3.00"

    @pytest.mark.asyncio
    async def test_amex_rule_prefers_adyen(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        router = await make_router(seed_providers, observability, routing_profile="rules_only")

        decision = await router.route(make_context(network=CardNetwork.AMEX))

        assert decision.selected_provider == "AdyenMock"
        assert decision.candidates == ["AdyenMock", "StripeMock"]
        assert "LocalBankMock" in decision.metadata.eligibility.filtered_out
        assert decision.metadata.composite_scores.scores == {
            "StripeMock": 0.5,
            "AdyenMock": 0.8,
        }
        rule_details = decision.metadata.strategy_details["Rules"]["AdyenMock"]
        assert rule_details["mode"] == "PREFERRED"
        assert rule_details["listed"] is True
        assert decision.reason == (
            "Selected AdyenMock using profile 'rules_only' "
            "(single strategy (Rules)) with composite score 0.8000"
        )

    @pytest.mark.asyncio
    async def test_balanced_composite_is_weighted_sum(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        router = await make_router(seed_providers, observability)

        decision = await router.route(make_context())

        weights = decision.metadata.strategy_weights.weights
        individual = decision.metadata.individual_scores.provider_scores
        for name, composite in decision.metadata.composite_scores.scores.items():
            expected = sum(weights[s] * score for s, score in individual[name].items())
            assert round(composite, 4) == round(expected, 4)
        ranked = decision.metadata.composite_scores.scores
        assert decision.candidates == sorted(ranked, key=lambda name: -ranked[name])
        assert decision.selected_provider == decision.candidates[0]

    @pytest.mark.asyncio
    async def test_unsupported_country(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        for provider in seed_providers:
            provider.countries = {"US", "GB"}
        router = await make_router(seed_providers, observability)

        decision = await router.route(make_context(country="XX"))

        assert decision.candidates == []
        assert decision.selected_provider is None
        assert decision.reason == "No eligible providers found"
        assert all(p.fee_calls == 0 and p.health_calls == 0 for p in seed_providers)


class TestRoutingGuarantees:
    @pytest.mark.asyncio
    async def test_filtered_providers_never_selected(
        self, observability: MockObservabilityManager
    ) -> None:
        providers = [
            FakeProvider("CheapButDown", fee="0.10", success_rate=0.50),
            FakeProvider("CheapNoAmex", fee="0.20", networks={"VISA"}),
            FakeProvider("Fallback", fee="5.00"),
        ]
        router = await make_router(providers, observability, routing_profile="cost_optimized")

        decision = await router.route(make_context(network=CardNetwork.AMEX))

        assert decision.selected_provider == "Fallback"
        assert decision.candidates == ["Fallback"]
        evaluations = {e.provider_name: e for e in decision.metadata.evaluations}
        assert evaluations["CheapNoAmex"].eligible is False
        assert evaluations["CheapButDown"].healthy is False
        assert evaluations["CheapButDown"].composite_score == 0.0

    @pytest.mark.asyncio
    async def test_same_input_same_decision(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        router = await make_router(seed_providers, observability)

        first = await router.route(make_context())
        second = await router.route(make_context())

        assert first.model_dump() == second.model_dump()

    @pytest.mark.asyncio
    async def test_ties_follow_registration_order(
        self, observability: MockObservabilityManager
    ) -> None:
        providers = [FakeProvider("First"), FakeProvider("Second"), FakeProvider("Third")]
        router = await make_router(providers, observability, routing_profile="rules_only")

        decision = await router.route(make_context(country="GB"))

        assert decision.candidates == ["First", "Second", "Third"]
        assert decision.selected_provider == "First"

    @pytest.mark.asyncio
    async def test_state_trail_and_events(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        router = await make_router(seed_providers, observability)

        decision = await router.route(make_context())

        assert decision.metadata.state_trail == [
            RoutingState.START,
            RoutingState.ELIGIBILITY_CHECKED,
            RoutingState.HEALTH_CHECKED,
            RoutingState.PROFILE_RESOLVED,
            RoutingState.SCORED,
            RoutingState.RANKED,
            RoutingState.DECIDED,
        ]
        event = observability.events_of("route_decided")[0]
        assert event["payload"]["selected_provider"] == decision.selected_provider
        assert event["payload"]["strategies_used"] == decision.strategies_used

    @pytest.mark.asyncio
    async def test_health_fetched_once_per_provider(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        router = await make_router(seed_providers, observability)

        await router.route(make_context())

        assert [p.health_calls for p in seed_providers] == [1, 1, 1]
        assert [p.fee_calls for p in seed_providers] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self, observability: MockObservabilityManager) -> None:
        router = PaymentRouter(
            config={"provider_timeout_seconds": 0.05},
            observability_manager=observability,
        )
        await router.register_provider(FakeProvider("Hung", delay=1.0))
        await router.register_provider(FakeProvider("Quick"))

        decision = await router.route(make_context())

        assert decision.selected_provider == "Quick"
        assert decision.metadata.health_check.unhealthy_providers == ["Hung"]
        assert "timed out" in decision.metadata.health_check.health_metrics["Hung"].error


class TestConcurrentRouting:
    @pytest.mark.asyncio
    async def test_routes_during_configuration_updates(
        self,
        seed_providers: list[FakeProvider],
        observability: MockObservabilityManager,
    ) -> None:
        router = await make_router(seed_providers, observability)

        async def flip_profiles() -> None:
            for i in range(20):
                profile = "cost_optimized" if i % 2 == 0 else "balanced"
                await router.update_configuration("routing_profile", profile)
                await asyncio.sleep(0)

        results = await asyncio.gather(
            flip_profiles(),
            *(router.route(make_context()) for _ in range(40)),
        )
        decisions = results[1:]

        for decision in decisions:
            profile = decision.metadata.profile.name
            assert profile in {"balanced", "cost_optimized"}
            if profile == "cost_optimized":
                assert decision.selected_provider == "LocalBankMock"
                assert decision.strategies_used == ["Rules", "Reliability", "Cost"]
            else:
                assert len(decision.strategies_used) == 4
        assert router.configuration_manager.version == 20
