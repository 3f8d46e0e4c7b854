"""ObservabilityManager interface for routing events and logging."""

from abc import ABC, abstractmethod
from typing import Any


class ObservabilityManager(ABC):
    """Abstract interface for structured logging and audit events.

    Every degradation inside the routing core (neutral scores, profile
    fallback, default rules, last-known-good configuration) is reported
    through this interface.
    """

    @abstractmethod
    async def emit_event(
        self,
        event_type: str,
        payload: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Emit an audit event.

        Args:
            event_type: Type of event (e.g., "route_decided", "profile_fallback").
            payload: Event payload data.
            metadata: Optional metadata (merchant_id, timestamp, etc.).

        Raises:
            ObservabilityError: If event emission fails.
        """
        pass

    @abstractmethod
    async def log(
        self,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Log a message with structured context.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            message: Log message.
            context: Optional structured context data.

        Raises:
            ObservabilityError: If logging fails.
        """
        pass


class ObservabilityError(Exception):
    """Raised when observability operations fail."""

    pass
