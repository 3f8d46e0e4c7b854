"""Configuration infrastructure module."""

from payrouter.infrastructure.config.file_loader import (
    ConfigurationError,
    ConfigurationFileLoader,
)
from payrouter.infrastructure.config.file_watcher import ConfigurationFileWatcher
from payrouter.infrastructure.config.keys import ConfigKeys
from payrouter.infrastructure.config.manager import (
    ConfigurationManager,
    ConfigurationSnapshot,
)
from payrouter.infrastructure.config.settings import RouterSettings

__all__ = [
    "ConfigKeys",
    "RouterSettings",
    "ConfigurationFileLoader",
    "ConfigurationError",
    "ConfigurationManager",
    "ConfigurationSnapshot",
    "ConfigurationFileWatcher",
]
