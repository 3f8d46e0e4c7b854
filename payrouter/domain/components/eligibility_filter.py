"""EligibilityFilter component - capability gate for a transaction."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.route_decision import EligibilityMetadata
from payrouter.domain.models.routing_context import RoutingContext


class EligibilityResult(BaseModel):
    """Providers that support the transaction, plus why the others do not."""

    eligible: list[Any] = Field(
        default_factory=list,
        description="Eligible provider adapters, in input order",
    )
    filtered_out: list[str] = Field(default_factory=list)
    reasons: dict[str, str] = Field(default_factory=dict)
    total_candidates: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def eligible_names(self) -> list[str]:
        return [provider.name for provider in self.eligible]

    def to_metadata(self) -> EligibilityMetadata:
        return EligibilityMetadata(
            total_candidates=self.total_candidates,
            eligible_count=len(self.eligible),
            filtered_out=list(self.filtered_out),
            eligibility_reasons=dict(self.reasons),
        )


class EligibilityFilter:
    """Keeps the providers whose capabilities cover network, currency and country.

    Output order equals input order. A provider whose capability check raises
    is treated as not eligible.
    """

    def __init__(self, observability_manager: ObservabilityManager) -> None:
        self._observability = observability_manager

    async def apply(
        self,
        context: RoutingContext,
        candidates: list[PaymentProviderAdapter],
    ) -> EligibilityResult:
        """Check every candidate against the transaction.

        Args:
            context: Transaction being routed.
            candidates: Registered providers, in registration order.

        Returns:
            EligibilityResult with the eligible providers and a reason for
            each one filtered out.
        """
        eligible: list[PaymentProviderAdapter] = []
        filtered_out: list[str] = []
        reasons: dict[str, str] = {}

        for provider in candidates:
            try:
                supported = bool(
                    provider.supports(context.card_network, context.currency, context.country)
                )
            except Exception as e:
                await self._observability.log(
                    level="WARNING",
                    message="Provider capability check failed, treating as not eligible",
                    context={
                        "provider": provider.name,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                filtered_out.append(provider.name)
                reasons[provider.name] = f"Capability check failed: {e}"
                continue

            if supported:
                eligible.append(provider)
            else:
                filtered_out.append(provider.name)
                reasons[provider.name] = (
                    f"Does not support {context.card_network.value} "
                    f"in {context.currency}/{context.country}"
                )

        if filtered_out:
            await self._observability.log(
                level="DEBUG",
                message="Providers filtered by eligibility",
                context={
                    "merchant_id": context.merchant_id,
                    "filtered_out": filtered_out,
                    "eligible_count": len(eligible),
                },
            )

        return EligibilityResult(
            eligible=eligible,
            filtered_out=filtered_out,
            reasons=reasons,
            total_candidates=len(candidates),
        )
