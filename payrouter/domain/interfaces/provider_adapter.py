"""PaymentProviderAdapter abstract interface for downstream processors.

The routing core treats providers as opaque sources of capability, fee and
health information. Concrete processor integrations live outside this package
and implement this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from payrouter.domain.models.health_state import HealthSnapshot
    from payrouter.domain.models.provider_fee import ProviderFee
    from payrouter.domain.models.routing_context import CardNetwork


class PaymentProviderAdapter(ABC):
    """Abstract interface for a payment processor as seen by the router.

    Key Responsibilities:
    - Declare which card networks, currencies and countries are supported
    - Quote the processing fee for an amount
    - Report current reliability metrics

    Example Usage:
        ```python
        class StripeAdapter(PaymentProviderAdapter):
            name = "Stripe"

            def supports(self, network, currency, country):
                return network in {CardNetwork.VISA, CardNetwork.MASTERCARD}

            async def fee_for(self, currency, amount):
                return ProviderFee(amount=amount * Decimal("0.029"), currency=currency)

            async def health_snapshot(self):
                return HealthSnapshot(success_rate=0.98, latency_ms=150, sample_size=10000)
        ```

    Lookups are expected to be fast (in-memory or cached). The router wraps
    ``fee_for`` and ``health_snapshot`` in a timeout regardless.
    """

    name: str
    """Unique provider name used in rules, weights and decisions."""

    @abstractmethod
    def supports(self, network: CardNetwork, currency: str, country: str) -> bool:
        """Return True if the provider can process this network/currency/country."""
        ...

    @abstractmethod
    async def fee_for(self, currency: str, amount: Decimal) -> ProviderFee:
        """Quote the fee for processing ``amount`` in ``currency``.

        Raises:
            Exception: Any failure; the cost strategy scores the provider 0.0.
        """
        ...

    @abstractmethod
    async def health_snapshot(self) -> HealthSnapshot:
        """Return current success rate, latency and sample size.

        Raises:
            Exception: Any failure; the provider fails the health gate.
        """
        ...


class PaymentProviderProtocol(Protocol):
    """Structural type for provider adapters that do not inherit the ABC."""

    name: str

    def supports(self, network: CardNetwork, currency: str, country: str) -> bool:
        """Capability check."""
        ...

    async def fee_for(self, currency: str, amount: Decimal) -> ProviderFee:
        """Fee quote."""
        ...

    async def health_snapshot(self) -> HealthSnapshot:
        """Reliability metrics."""
        ...


__all__ = [
    "PaymentProviderAdapter",
    "PaymentProviderProtocol",
]
