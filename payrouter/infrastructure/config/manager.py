"""Configuration manager serving versioned, atomically swapped snapshots."""

import asyncio
from copy import deepcopy
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, TypeVar

from payrouter.domain.interfaces.config_source import ConfigSource
from payrouter.domain.interfaces.observability_manager import ObservabilityManager
from payrouter.infrastructure.config.file_loader import (
    ConfigurationError,
    ConfigurationFileLoader,
    validate_section,
)

T = TypeVar("T")


class ConfigurationSnapshot(ConfigSource):
    """Immutable, versioned view of the routing configuration.

    Values are deep-copied when the snapshot is built and exposed through a
    read-only mapping. A snapshot is never modified after construction, so it
    doubles as the pinned ConfigSource handed to one routing call.
    """

    __slots__ = ("_version", "values", "timestamp")

    def __init__(
        self,
        version: int,
        values: dict[str, Any],
        timestamp: datetime,
    ) -> None:
        """Initialize configuration snapshot.

        Args:
            version: Version number for this snapshot.
            values: Configuration values keyed by ConfigKeys name.
            timestamp: Timestamp when snapshot was created.
        """
        self._version = version
        self.values: MappingProxyType[str, Any] = MappingProxyType(deepcopy(values))
        self.timestamp = timestamp

    def get(self, key: str, expected_type: type[T] | None = None) -> T | Any | None:
        """Return a private copy of the value under ``key``.

        Args:
            key: Configuration key.
            expected_type: Optional type the value must be an instance of.

        Returns:
            The value, or None when absent or not of ``expected_type``.
        """
        value = self.values.get(key)
        if value is None:
            return None
        if expected_type is not None and not isinstance(value, expected_type):
            return None
        return deepcopy(value)

    @property
    def version(self) -> int:
        return self._version

    def to_dict(self) -> dict[str, Any]:
        return deepcopy(dict(self.values))


class ConfigurationManager(ConfigSource):
    """Owns the single shared configuration snapshot.

    Readers call ``get`` without locking and always see one complete
    snapshot. Writers serialize on a lock, build and validate the full
    replacement off to the side and swap it in with a single assignment, so a
    failed refresh leaves the previous snapshot untouched.
    """

    def __init__(
        self,
        config_file_path: str | Path | None = None,
        initial_config: dict[str, Any] | None = None,
        observability_manager: ObservabilityManager | None = None,
        max_history: int = 10,
    ) -> None:
        """Initialize ConfigurationManager.

        Args:
            config_file_path: Optional path to a YAML or JSON configuration file.
            initial_config: Optional configuration to serve before any file load.
            observability_manager: Optional ObservabilityManager for logging and events.
            max_history: Maximum number of configuration snapshots to keep for rollback.

        Raises:
            ConfigurationError: If the file does not exist or initial_config is invalid.
        """
        self._file_loader = (
            ConfigurationFileLoader(config_file_path=config_file_path)
            if config_file_path is not None
            else None
        )
        self._observability = observability_manager
        self._max_history = max_history

        self._history: list[ConfigurationSnapshot] = []
        if initial_config:
            self._validate(initial_config)
            self._snapshot = ConfigurationSnapshot(1, initial_config, datetime.utcnow())
            self._add_to_history(self._snapshot)
        else:
            # Version 0: nothing loaded yet, every consumer uses its defaults.
            self._snapshot = ConfigurationSnapshot(0, {}, datetime.utcnow())

        self._lock = asyncio.Lock()

    # Read path

    def get(self, key: str, expected_type: type[T] | None = None) -> T | Any | None:
        """Return a private copy of the value under ``key`` from the current snapshot."""
        return self._snapshot.get(key, expected_type)

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def snapshot(self) -> ConfigurationSnapshot:
        return self._snapshot

    def pin(self) -> ConfigurationSnapshot:
        """Return the snapshot served right now; later swaps do not affect it."""
        return self._snapshot

    @property
    def config_file_path(self) -> Path | None:
        return self._file_loader.path if self._file_loader else None

    # Write path

    async def load_configuration(self) -> dict[str, Any]:
        """Load configuration from file and swap it in as a new snapshot.

        Returns:
            The configuration now being served.

        Raises:
            ConfigurationError: If no file is configured, or it cannot be loaded
                or validated. The current snapshot stays in place.
        """
        if self._file_loader is None:
            raise ConfigurationError("No configuration file configured")

        async with self._lock:
            try:
                config = self._file_loader.load()
                self._file_loader.validate_structure(config)
            except ConfigurationError:
                raise
            except Exception as e:
                raise ConfigurationError(f"Failed to load configuration: {e}") from e

            snapshot = self._swap(config)

        await self._emit(
            "configuration_loaded",
            {
                "version": snapshot.version,
                "keys": sorted(snapshot.values),
                "source": str(self._file_loader.path),
            },
        )
        return snapshot.to_dict()

    async def reload_configuration(self) -> dict[str, Any]:
        """Reload configuration from file (hot reload).

        Raises:
            ConfigurationError: If the new file is invalid; the previous
                snapshot keeps being served.
        """
        return await self.load_configuration()

    async def replace_configuration(self, config: dict[str, Any]) -> dict[str, Any]:
        """Replace the whole configuration with ``config``.

        Raises:
            ConfigurationError: If ``config`` is invalid.
        """
        async with self._lock:
            self._validate(config)
            snapshot = self._swap(config)

        await self._emit(
            "configuration_loaded",
            {"version": snapshot.version, "keys": sorted(snapshot.values), "source": "dict"},
        )
        return snapshot.to_dict()

    async def update_value(self, key: str, value: Any) -> Any:
        """Set one configuration key in a new snapshot.

        Raises:
            ConfigurationError: If the key is unknown or the value malformed.
        """
        async with self._lock:
            validate_section(key, value)
            values = self._snapshot.to_dict()
            values[key] = value
            snapshot = self._swap(values)

        await self._emit("configuration_updated", {"key": key, "version": snapshot.version})
        return deepcopy(value)

    async def remove_value(self, key: str) -> bool:
        """Remove one configuration key in a new snapshot.

        Returns:
            True if the key existed.
        """
        async with self._lock:
            values = self._snapshot.to_dict()
            if key not in values:
                return False
            del values[key]
            snapshot = self._swap(values)

        await self._emit(
            "configuration_updated", {"key": key, "version": snapshot.version, "removed": True}
        )
        return True

    async def rollback(self, version: int | None = None) -> dict[str, Any]:
        """Serve the values of an earlier snapshot again, under a new version.

        Args:
            version: Version to restore. If None, restores the previous version.

        Raises:
            ConfigurationError: If version not found.
        """
        async with self._lock:
            if version is None:
                if len(self._history) < 2:
                    raise ConfigurationError("No previous version available for rollback")
                target = self._history[-2]
            else:
                target = next(
                    (s for s in reversed(self._history) if s.version == version), None
                )
                if target is None:
                    raise ConfigurationError(f"Configuration version {version} not found")

            from_version = self._snapshot.version
            snapshot = self._swap(target.to_dict())

        await self._emit(
            "configuration_rollback",
            {
                "from_version": from_version,
                "to_version": target.version,
                "new_version": snapshot.version,
            },
        )
        return snapshot.to_dict()

    def get_current_configuration(self) -> dict[str, Any]:
        """Get current configuration state including its version."""
        snapshot = self._snapshot
        return {**snapshot.to_dict(), "version": snapshot.version}

    def get_history(self) -> list[dict[str, Any]]:
        """Get configuration history (version, timestamp, keys)."""
        return [
            {
                "version": snapshot.version,
                "timestamp": snapshot.timestamp.isoformat(),
                "keys": sorted(snapshot.values),
            }
            for snapshot in self._history
        ]

    def _swap(self, values: dict[str, Any]) -> ConfigurationSnapshot:
        """Build the next snapshot completely, then publish it. Caller holds the lock."""
        snapshot = ConfigurationSnapshot(
            version=self._snapshot.version + 1,
            values=values,
            timestamp=datetime.utcnow(),
        )
        self._snapshot = snapshot
        self._add_to_history(snapshot)
        return snapshot

    def _validate(self, config: dict[str, Any]) -> None:
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration must be a dictionary")
        for key, value in config.items():
            validate_section(key, value)

    def _add_to_history(self, snapshot: ConfigurationSnapshot) -> None:
        self._history.append(snapshot)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history :]

    async def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        if self._observability:
            await self._observability.emit_event(
                event_type=event_type,
                payload=payload,
                metadata={"timestamp": datetime.utcnow().isoformat()},
            )
