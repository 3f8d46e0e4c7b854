"""Default observability manager implementation."""

import logging
import re
from datetime import datetime
from typing import Any

import structlog

from payrouter.domain.interfaces.observability_manager import (
    ObservabilityError,
    ObservabilityManager,
)

SENSITIVE_KEYS = frozenset({"card_number", "pan", "cvv", "cvc"})

# Anything that looks like a full card number (12-19 digits, optional separators).
_PAN_PATTERN = re.compile(r"\b(?:\d[ -]?){11,18}\d\b")


def sanitize_for_logging(data: Any) -> Any:
    """Sanitize data to remove cardholder data before logging.

    Values under sensitive keys are replaced entirely, and digit runs long
    enough to be a card number are masked inside any string. BIN prefixes
    (six to eight digits) are left as they are.

    Args:
        data: Data structure to sanitize (dict, list, or primitive).

    Returns:
        Sanitized copy of ``data``.
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = sanitize_for_logging(value)
        return sanitized
    elif isinstance(data, (list, tuple)):
        return [sanitize_for_logging(item) for item in data]
    elif isinstance(data, str):
        return _PAN_PATTERN.sub("[REDACTED]", data)
    return data


class DefaultObservabilityManager(ObservabilityManager):
    """Default implementation of ObservabilityManager using structlog.

    JSON output for production, console output for development.
    """

    def __init__(
        self,
        log_level: str = "INFO",
        json_format: bool = True,
        logger_name: str = "payrouter",
    ) -> None:
        """Initialize DefaultObservabilityManager.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            json_format: If True, render JSON; otherwise human-readable output.
            logger_name: Name of the underlying stdlib logger.
        """
        self._log_level = log_level
        self._json_format = json_format

        processors: list[Any] = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
        ]

        if json_format:
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer())

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            level=getattr(logging, log_level.upper(), logging.INFO),
            format="%(message)s"
            if json_format
            else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        logging.getLogger(logger_name).setLevel(
            getattr(logging, log_level.upper(), logging.INFO)
        )

        self._logger = structlog.get_logger(logger_name)

    async def emit_event(
        self,
        event_type: str,
        payload: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Emit an audit event as a structured INFO record.

        Raises:
            ObservabilityError: If event emission fails.
        """
        try:
            event_data = dict(sanitize_for_logging(payload))
            if metadata:
                sanitized_metadata = sanitize_for_logging(metadata)
                sanitized_metadata.setdefault("timestamp", datetime.utcnow().isoformat())
                event_data["metadata"] = sanitized_metadata

            self._logger.info("Event emitted", event_type=event_type, **event_data)
        except Exception as e:
            raise ObservabilityError(f"Failed to emit event: {e}") from e

    async def log(
        self,
        level: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Log a message with structured context.

        Raises:
            ObservabilityError: If logging fails.
        """
        try:
            sanitized_message = sanitize_for_logging(message)
            log_method = getattr(self._logger, level.lower(), self._logger.info)
            if context:
                log_method(sanitized_message, **sanitize_for_logging(context))
            else:
                log_method(sanitized_message)
        except Exception as e:
            raise ObservabilityError(f"Failed to log message: {e}") from e
