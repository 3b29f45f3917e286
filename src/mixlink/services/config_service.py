"""Configuration service for managing application configuration."""

import logging
from pathlib import Path
from threading import Lock
from typing import Any

from pydantic import ValidationError

from mixlink.models import AppConfig
from mixlink.protocols import ConfigEvent, ConfigObserver
from mixlink.utils import ObserverManager

logger = logging.getLogger(__name__)


class ConfigService:
    """
    Owns the live AppConfig.

    Reads and writes the file through AppConfig.load and AppConfig.save and
    notifies ConfigObservers of every change, so the connection renewer, the
    LED monitor and the button dispatcher pick up new settings on their own.

    Threading:
        All public methods are thread-safe. The _lock protects config state
        during reads/writes and is released before notifying observers.

    Usage Example:
        ```python
        config = AppConfig.load_or_default()
        service = ConfigService(config, DEFAULT_CONFIG_PATH)
        service.register_observer(renewer)
        service.reload()  # emits CONFIG_LOADED with the new config
        ```
    """

    def __init__(
        self,
        initial_config: AppConfig,
        default_path: Path | None = None,
    ):
        """
        Initialize the configuration service.

        Args:
            initial_config: The initial configuration instance
            default_path: Default path for save/load operations (optional)
        """
        self._config = initial_config
        self._default_path = default_path
        self._lock = Lock()

        self._observers = ObserverManager[ConfigObserver]("on_config_event")

        logger.info(f"ConfigService initialized: {initial_config.describe()}")

    @property
    def default_path(self) -> Path | None:
        return self._default_path

    # =================================================================
    # Event System
    # =================================================================

    def register_observer(self, observer: ConfigObserver) -> None:
        """
        Register an observer to receive configuration events.

        Observers are notified in registration order.
        """
        self._observers.register(observer)

    def unregister_observer(self, observer: ConfigObserver) -> None:
        """Unregister an observer."""
        self._observers.unregister(observer)

    def _notify_observers(self, event: ConfigEvent, **kwargs: Any) -> None:
        self._observers.notify(event, **kwargs)

    # =================================================================
    # Configuration Access
    # =================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Args:
            key: Configuration field name
            default: Default value if key doesn't exist
        """
        with self._lock:
            return getattr(self._config, key, default)

    def get_config(self) -> AppConfig:
        """Get a deep copy of the entire configuration object."""
        with self._lock:
            return self._config.model_copy(deep=True)

    # =================================================================
    # Configuration Mutation
    # =================================================================

    def update(self, values: dict[str, Any]) -> None:
        """
        Update one or more configuration values at once.

        Args:
            values: Dictionary of field names and values to update

        Raises:
            AttributeError: If any key doesn't exist in config model
            ValidationError: If any value fails Pydantic validation

        Events:
            Emits a single CONFIG_UPDATED event with all changed keys/values
        """
        with self._lock:
            for key in values:
                if key not in AppConfig.model_fields:
                    raise AttributeError(f"AppConfig has no field '{key}'")

            # Rebuild the model so every value goes through validation
            try:
                current_dict = self._config.model_dump()
                current_dict.update(values)
                self._config = AppConfig.model_validate(current_dict)
            except ValidationError as e:
                logger.error(f"Validation error during config update: {e}")
                raise

        self._notify_observers(ConfigEvent.CONFIG_UPDATED, keys=list(values.keys()), values=values)
        logger.debug(f"Config updated: {list(values.keys())}")

    def reset(self) -> None:
        """Reset configuration to default values (emits CONFIG_RESET)."""
        with self._lock:
            self._config = AppConfig()
            config_copy = self._config.model_copy(deep=True)

        self._notify_observers(ConfigEvent.CONFIG_RESET, config=config_copy)
        logger.info("Config reset to defaults")

    # =================================================================
    # Persistence
    # =================================================================

    def load(self, path: Path | None = None) -> None:
        """
        Load configuration from file.

        Args:
            path: Path to config file (uses default_path if None)

        Raises:
            ValueError: If no path specified and no default_path set
            FileNotFoundError: If config file doesn't exist
            ConfigFileInvalidError: If the file is not valid JSON
            ConfigValidationError: If config file has invalid values

        Events:
            Emits CONFIG_LOADED with the file path and a copy of the new config
        """
        file_path = path or self._default_path
        if file_path is None:
            raise ValueError("No path specified and no default_path set")

        new_config = AppConfig.load(Path(file_path))

        with self._lock:
            self._config = new_config
            config_copy = new_config.model_copy(deep=True)

        self._notify_observers(ConfigEvent.CONFIG_LOADED, path=file_path, config=config_copy)
        logger.info(f"Config loaded from {file_path}")

    def reload(self, path: Path | None = None) -> None:
        """Reload configuration from file, discarding in-memory changes."""
        self.load(path)

    def save(self, path: Path | None = None) -> None:
        """
        Save configuration to file (emits CONFIG_SAVED).

        Raises:
            ValueError: If no path specified and no default_path set
        """
        file_path = path or self._default_path
        if file_path is None:
            raise ValueError("No path specified and no default_path set")

        file_path = Path(file_path)

        with self._lock:
            config_copy = self._config.model_copy(deep=True)

        # I/O outside the lock
        config_copy.save(file_path)

        self._notify_observers(ConfigEvent.CONFIG_SAVED, path=file_path)
        logger.info(f"Config saved to {file_path}")
