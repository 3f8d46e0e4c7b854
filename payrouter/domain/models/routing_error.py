"""Routing error taxonomy."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories of routing errors."""

    NoEligibleProviders = "no_eligible_providers"
    """No provider supports the transaction (decision, never raised to callers)."""

    NoHealthyProviders = "no_healthy_providers"
    """All eligible providers failed the health gate (decision, never raised)."""

    StrategyComputationError = "strategy_computation_error"
    """A strategy could not score a provider; recovered with a neutral score."""

    ProfileResolutionError = "profile_resolution_error"
    """Active profile unknown or invalid; recovered with the balanced profile."""

    ConfigurationUnavailable = "configuration_unavailable"
    """Configuration could not be read; recovered with the last good snapshot."""

    ProviderTimeout = "provider_timeout"
    """A provider lookup exceeded its time budget."""

    UnknownError = "unknown_error"
    """Unknown or unclassified error."""


class RoutingError(Exception):
    """Base error raised inside the routing core.

    These errors are raised at the point of failure and handled at the
    nearest degradation point; none of them reach ``route()`` callers.

    Example:
        ```python
        raise StrategyComputationError(
            "Fee lookup failed",
            details={"provider": "StripeMock", "strategy": "cost"},
        )
        ```
    """

    category: ErrorCategory = ErrorCategory.UnknownError

    def __init__(
        self,
        message: str,
        category: ErrorCategory | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if category is not None:
            self.category = ErrorCategory(category) if isinstance(category, str) else category
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(category={self.category.value}, message={self.message!r})"

    def __str__(self) -> str:
        return self.message


class StrategyComputationError(RoutingError):
    category = ErrorCategory.StrategyComputationError


class ProfileResolutionError(RoutingError):
    category = ErrorCategory.ProfileResolutionError


class ConfigurationUnavailableError(RoutingError):
    category = ErrorCategory.ConfigurationUnavailable


class ProviderLookupError(RoutingError):
    """A provider fee or health lookup failed or timed out."""

    category = ErrorCategory.StrategyComputationError
