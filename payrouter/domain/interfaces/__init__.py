"""Domain interfaces for dependency injection."""

from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.observability_manager import (
    ObservabilityError,
    ObservabilityManager,
)
from payrouter.domain.interfaces.provider_adapter import (
    PaymentProviderAdapter,
    PaymentProviderProtocol,
)

__all__ = [
    "ConfigSource",
    "ObservabilityError",
    "ObservabilityManager",
    "PaymentProviderAdapter",
    "PaymentProviderProtocol",
]
