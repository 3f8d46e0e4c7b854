"""ConfigSource interface for read access to routing configuration."""

from abc import ABC, abstractmethod
from typing import Any, TypeVar

T = TypeVar("T")


class ConfigSource(ABC):
    """Read-only view of the current configuration snapshot.

    Implementations must return values from one internally consistent
    snapshot and must never raise on the read path.
    """

    @abstractmethod
    def get(self, key: str, expected_type: type[T] | None = None) -> T | Any | None:
        """Return the value stored under ``key``.

        Args:
            key: Configuration key (see ConfigKeys).
            expected_type: Optional type the value must be an instance of.

        Returns:
            The value, or None when the key is absent or of the wrong type.
        """
        pass

    @property
    @abstractmethod
    def version(self) -> int:
        """Version number of the snapshot currently served."""
        pass

    def pin(self) -> "ConfigSource":
        """Return a view fixed to the snapshot served right now.

        A routing call pins once and reads every setting through the pinned
        view, so a swap published mid-call is only seen by later calls.
        Sources whose contents never change can return themselves.

        Returns:
            ConfigSource that keeps serving the current snapshot.
        """
        return self
