"""Configuration settings using pydantic-settings."""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RouterSettings(BaseSettings):
    """Process-level settings for the payment router.

    Settings can be loaded from environment variables or passed as a dictionary.
    Environment variables are prefixed with 'PAYROUTER_' (e.g., PAYROUTER_LOG_LEVEL=DEBUG).
    Routing behaviour itself (rules, weights, profiles) lives in the
    hot-reloadable configuration file, not here.

    Example:
        ```python
        # From environment variables
        settings = RouterSettings()

        # From dictionary
        settings = RouterSettings.from_dict({"provider_timeout_seconds": 0.5})
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="PAYROUTER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Observability configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON; False gives human-readable console output",
    )

    # Routing configuration
    config_file: str | None = Field(
        default=None,
        description="YAML or JSON file holding rules, weights and profiles",
    )
    default_profile: str = Field(
        default="balanced",
        description="Profile used when the configuration names none",
    )
    provider_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Upper bound for a single provider fee or health lookup",
    )

    # ConfigurationManager configuration
    config_history_size: int = Field(
        default=10,
        ge=1,
        description="Number of configuration snapshots kept for rollback",
    )
    watch_config_file: bool = Field(
        default=False,
        description="Reload the configuration file automatically when it changes",
    )
    config_debounce_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Debounce delay for file-change reloads",
    )

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "RouterSettings":
        """Create settings from a dictionary.

        Args:
            config: Dictionary with configuration values.

        Returns:
            RouterSettings instance.
        """
        return cls(**config)
