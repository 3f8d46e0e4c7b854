"""Configuration file loader for YAML and JSON files."""

import json
import os
from pathlib import Path
from typing import Any

import yaml

from payrouter.infrastructure.config.keys import ConfigKeys


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error message.
            field: Optional field name that failed validation.
        """
        self.message = message
        self.field = field
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return error message with field name if available."""
        if self.field:
            return f"Configuration error in field '{self.field}': {self.message}"
        return self.message


def validate_section(key: str, value: Any) -> None:
    """Validate the shape of one top-level configuration section.

    Only the container shapes are checked here. Individual rules, weights and
    profiles are validated when they are read, so one bad entry degrades that
    entry instead of rejecting the whole file.

    Raises:
        ConfigurationError: If the key is unknown or the section has the wrong shape.
    """
    if key not in ConfigKeys.ALL:
        raise ConfigurationError(
            f"Unknown configuration key: '{key}'. Allowed keys: {', '.join(sorted(ConfigKeys.ALL))}",
            field=key,
        )

    if key == ConfigKeys.ROUTING_RULES:
        if not isinstance(value, list):
            raise ConfigurationError("Configuration 'routing_rules' must be a list", field=key)
        for idx, rule in enumerate(value):
            if not isinstance(rule, dict):
                raise ConfigurationError(
                    f"Routing rule at index {idx} must be a dictionary",
                    field=f"{key}[{idx}]",
                )

    elif key == ConfigKeys.ROUTING_WEIGHTS:
        if not isinstance(value, dict):
            raise ConfigurationError(
                "Configuration 'routing_weights' must be a dictionary", field=key
            )

    elif key == ConfigKeys.ROUTING_PROFILE:
        if isinstance(value, dict):
            value = value.get("profile")
        if not isinstance(value, str) or not value.strip():
            raise ConfigurationError(
                "Configuration 'routing_profile' must be a non-empty string or {'profile': name}",
                field=key,
            )

    elif key == ConfigKeys.ROUTING_PROFILES:
        if not isinstance(value, dict):
            raise ConfigurationError(
                "Configuration 'routing_profiles' must be a dictionary", field=key
            )
        for name, profile in value.items():
            if not isinstance(profile, dict):
                raise ConfigurationError(
                    f"Routing profile '{name}' must be a dictionary",
                    field=f"{key}.{name}",
                )

    elif key == ConfigKeys.HEALTH_CHECK_CONFIG:
        if not isinstance(value, dict):
            raise ConfigurationError(
                "Configuration 'health_check_config' must be a dictionary", field=key
            )


class ConfigurationFileLoader:
    """Loads routing configuration from YAML or JSON files.

    Validates file format and the top-level structure.
    """

    def __init__(self, config_file_path: str | Path | None = None) -> None:
        """Initialize ConfigurationFileLoader.

        Args:
            config_file_path: Path to configuration file. If None, attempts to
                            load from PAYROUTER_CONFIG_FILE environment variable.

        Raises:
            ConfigurationError: If no path is available or the file does not exist.
        """
        if config_file_path is None:
            config_file_path = os.getenv("PAYROUTER_CONFIG_FILE")
            if not config_file_path:
                raise ConfigurationError(
                    "Configuration file path not provided and PAYROUTER_CONFIG_FILE "
                    "environment variable is not set"
                )

        self._config_path = Path(config_file_path)
        if not self._config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self._config_path}")

        # Validate file path to prevent directory traversal
        try:
            self._config_path.resolve().relative_to(Path.cwd().resolve())
        except ValueError:
            if not self._config_path.is_absolute():
                raise ConfigurationError(
                    f"Configuration file path must be within current directory or absolute: {self._config_path}"
                ) from None

    @property
    def path(self) -> Path:
        return self._config_path

    def load(self) -> dict[str, Any]:
        """Load configuration from file.

        Automatically detects file format (YAML or JSON) based on file extension.

        Returns:
            Dictionary mapping configuration keys to values.

        Raises:
            ConfigurationError: If file format is invalid or file cannot be parsed.
        """
        suffix = self._config_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            return self._load_yaml()
        elif suffix == ".json":
            return self._load_json()
        else:
            raise ConfigurationError(
                f"Unsupported configuration file format: {suffix}. "
                "Supported formats: .yaml, .yml, .json"
            )

    def _load_yaml(self) -> dict[str, Any]:
        try:
            with self._config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
                if data is None:
                    return {}
                if not isinstance(data, dict):
                    raise ConfigurationError("YAML file must contain a dictionary/mapping")
                return data
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}") from e

    def _load_json(self) -> dict[str, Any]:
        try:
            with self._config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
                if not isinstance(data, dict):
                    raise ConfigurationError("JSON file must contain an object")
                return data
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}") from e

    def validate_structure(self, config: dict[str, Any]) -> None:
        """Validate configuration file structure.

        Args:
            config: Configuration dictionary to validate.

        Raises:
            ConfigurationError: If configuration structure is invalid.
        """
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration must be a dictionary")

        for key, value in config.items():
            validate_section(key, value)
