"""Application services."""

from .config_service import ConfigService
from .config_watcher import ConfigFileWatcher

__all__ = ["ConfigFileWatcher", "ConfigService"]
