"""Domain components."""

from payrouter.domain.components.eligibility_filter import EligibilityFilter, EligibilityResult
from payrouter.domain.components.health_filter import HealthFilter, HealthResult
from payrouter.domain.components.profile_catalog import ProfileCatalog, ProfileResolution
from payrouter.domain.components.provider_registry import (
    ProviderRegistrationError,
    ProviderRegistry,
)
from payrouter.domain.components.routing_engine import (
    NO_ELIGIBLE_PROVIDERS,
    NO_HEALTHY_PROVIDERS,
    CompositeRoutingEngine,
)

__all__ = [
    "ProviderRegistry",
    "ProviderRegistrationError",
    "EligibilityFilter",
    "EligibilityResult",
    "HealthFilter",
    "HealthResult",
    "ProfileCatalog",
    "ProfileResolution",
    "CompositeRoutingEngine",
    "NO_ELIGIBLE_PROVIDERS",
    "NO_HEALTHY_PROVIDERS",
]
