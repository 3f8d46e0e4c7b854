"""Time-bounded fee and health lookups against provider adapters."""

from __future__ import annotations

import asyncio
from decimal import Decimal

from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.provider_fee import ProviderFee
from payrouter.domain.models.routing_error import ErrorCategory, ProviderLookupError

DEFAULT_LOOKUP_TIMEOUT_SECONDS = 2.0


async def fetch_health(
    provider: PaymentProviderAdapter,
    timeout: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
) -> HealthSnapshot:
    """Get the provider's health snapshot within ``timeout`` seconds.

    Raises:
        ProviderLookupError: If the lookup raises, times out or returns
            something other than a HealthSnapshot.
    """
    try:
        health = await asyncio.wait_for(provider.health_snapshot(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderLookupError(
            f"Health lookup for '{provider.name}' timed out after {timeout}s",
            category=ErrorCategory.ProviderTimeout,
            details={"provider": provider.name, "lookup": "health"},
        ) from e
    except Exception as e:
        raise ProviderLookupError(
            f"Health lookup for '{provider.name}' failed: {e}",
            details={"provider": provider.name, "lookup": "health"},
        ) from e

    if not isinstance(health, HealthSnapshot):
        raise ProviderLookupError(
            f"Health lookup for '{provider.name}' returned {type(health).__name__}",
            details={"provider": provider.name, "lookup": "health"},
        )
    return health


async def fetch_fee(
    provider: PaymentProviderAdapter,
    currency: str,
    amount: Decimal,
    timeout: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
) -> ProviderFee:
    """Get the provider's fee quote within ``timeout`` seconds.

    Raises:
        ProviderLookupError: If the lookup raises, times out or returns
            something other than a ProviderFee.
    """
    try:
        fee = await asyncio.wait_for(provider.fee_for(currency, amount), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderLookupError(
            f"Fee lookup for '{provider.name}' timed out after {timeout}s",
            category=ErrorCategory.ProviderTimeout,
            details={"provider": provider.name, "lookup": "fee"},
        ) from e
    except Exception as e:
        raise ProviderLookupError(
            f"Fee lookup for '{provider.name}' failed: {e}",
            details={"provider": provider.name, "lookup": "fee"},
        ) from e

    if not isinstance(fee, ProviderFee):
        raise ProviderLookupError(
            f"Fee lookup for '{provider.name}' returned {type(fee).__name__}",
            details={"provider": provider.name, "lookup": "fee"},
        )
    return fee
