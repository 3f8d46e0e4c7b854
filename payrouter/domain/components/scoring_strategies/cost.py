"""Cost scoring strategy - cheaper providers score higher."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal

from payrouter.domain.components.provider_lookup import fetch_fee
from payrouter.domain.components.scoring_strategies.base import ScoringStrategy
from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.provider_fee import ProviderFee
from payrouter.domain.models.route_decision import ScoringResult
from payrouter.domain.models.routing_context import RoutingContext
from payrouter.domain.models.routing_profile import StrategyType

POSITION_QUANTUM = Decimal("0.0001")
AVERAGE_QUANTUM = Decimal("0.01")


def normalized_cost_score(fee: Decimal, min_fee: Decimal, max_fee: Decimal) -> float:
    """1.0 for the cheapest fee, 0.0 for the most expensive.

    The position within [min_fee, max_fee] is rounded half-up to four
    decimal places before inverting.
    """
    if max_fee == min_fee:
        return 1.0
    position = ((fee - min_fee) / (max_fee - min_fee)).quantize(
        POSITION_QUANTUM, rounding=ROUND_HALF_UP
    )
    return float(Decimal(1) - position)


class CostStrategy(ScoringStrategy):
    """Scores providers by the fee they quote for this transaction.

    Fees are compared as exact decimals. A provider whose fee lookup fails
    scores 0.0 and is left out of the min/max range the others are
    normalized against.
    """

    strategy_type = StrategyType.COST

    async def evaluate(
        self,
        context: RoutingContext,
        providers: list[PaymentProviderAdapter],
        health: Mapping[str, HealthSnapshot] | None = None,
        config: ConfigSource | None = None,
    ) -> dict[str, ScoringResult]:
        quotes = await asyncio.gather(
            *(self._quote(context, provider) for provider in providers)
        )
        fees: dict[str, ProviderFee] = {}
        errors: dict[str, str] = {}
        for provider, (fee, error) in zip(providers, quotes):
            if fee is not None:
                fees[provider.name] = fee
            else:
                errors[provider.name] = error or "unknown error"

        amounts = [fee.amount for fee in fees.values()]
        min_fee = min(amounts) if amounts else Decimal(0)
        max_fee = max(amounts) if amounts else Decimal(0)
        avg_fee = (
            (sum(amounts, Decimal(0)) / len(amounts)).quantize(
                AVERAGE_QUANTUM, rounding=ROUND_HALF_UP
            )
            if amounts
            else Decimal(0)
        )

        results: dict[str, ScoringResult] = {}
        for provider in providers:
            fee = fees.get(provider.name)
            if fee is None:
                results[provider.name] = ScoringResult(
                    score=0.0,
                    details={
                        "error": errors[provider.name],
                        "amount_processed": str(context.amount),
                        "currency_processed": context.currency,
                    },
                )
                continue

            results[provider.name] = ScoringResult(
                score=normalized_cost_score(fee.amount, min_fee, max_fee),
                details={
                    "provider_fee": str(fee.amount),
                    "fee_currency": fee.currency,
                    "fee_type": fee.fee_type.value,
                    "amount_processed": str(context.amount),
                    "currency_processed": context.currency,
                    "min_fee": str(min_fee),
                    "max_fee": str(max_fee),
                    "avg_fee": str(avg_fee),
                    "savings_vs_max": str(max_fee - fee.amount),
                },
            )
        return results

    async def _quote(
        self, context: RoutingContext, provider: PaymentProviderAdapter
    ) -> tuple[ProviderFee | None, str | None]:
        try:
            fee = await fetch_fee(
                provider, context.currency, context.amount, timeout=self._provider_timeout
            )
            return fee, None
        except Exception as e:
            await self._warn(
                "Fee lookup failed, scoring provider as most expensive",
                provider=provider.name,
                error=str(e),
            )
            return None, str(e)
