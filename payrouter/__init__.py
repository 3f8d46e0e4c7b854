"""payrouter - multi-criteria payment provider selection."""

from payrouter.domain.interfaces.provider_adapter import PaymentProviderAdapter
from payrouter.domain.models.health_state import HealthSnapshot
from payrouter.domain.models.provider_fee import FeeType, ProviderFee
from payrouter.domain.models.route_decision import RouteDecision
from payrouter.domain.models.routing_context import CardNetwork, RoutingContext
from payrouter.router import PaymentRouter

__version__ = "0.1.0"

__all__ = [
    "PaymentRouter",
    "PaymentProviderAdapter",
    "RoutingContext",
    "CardNetwork",
    "RouteDecision",
    "ProviderFee",
    "FeeType",
    "HealthSnapshot",
]
