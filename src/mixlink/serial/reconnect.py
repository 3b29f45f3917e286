"""Applies reloaded configuration to a live connection."""

import logging
import time
from collections.abc import Callable
from typing import Any

from mixlink.exceptions import MixlinkError
from mixlink.models.config import AppConfig
from mixlink.protocols import ConfigEvent
from mixlink.serial.connection import ConnectionManager

logger = logging.getLogger(__name__)

# Time for the OS to release a just-closed port before reopening it
PORT_RELEASE_GRACE = 0.05


class ConnectionRenewer:
    """
    ConfigObserver that keeps the serial link in line with the config file.

    On every CONFIG_LOADED:
        1. Slider inversion and noise threshold are pushed to the tracker.
        2. If the port or baud rate changed, the connection is stopped (stop()
           returns only once the port is closed), slider state is reset, and
           after a short grace period the connection is started again.
        3. Otherwise slider state is simply reset, so the next frame re-reports
           every slider to consumers that rebuilt their state on reload.

    Register it after the other config observers: they then finish their own
    reload handling before the reset makes the device re-report everything.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        grace_period: float = PORT_RELEASE_GRACE,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._manager = manager
        self._grace_period = grace_period
        self._sleep = sleep

    def on_config_event(self, event: ConfigEvent, **kwargs: Any) -> None:
        """Handle configuration events (ConfigObserver protocol)."""
        if event is not ConfigEvent.CONFIG_LOADED:
            return

        config = kwargs.get("config")
        if config is None:
            logger.warning("CONFIG_LOADED without a config, ignoring")
            return

        self.apply(config)

    def apply(self, config: AppConfig) -> None:
        """Apply a freshly loaded config to the tracker and the connection."""
        tracker = self._manager.tracker
        tracker.configure(invert=config.invert_sliders, noise_threshold=config.noise_threshold)

        current = self._manager.connection
        if config.connection == current:
            tracker.reset()
            return

        logger.info(
            f"Detected change in connection parameters "
            f"({current.port}@{current.baud_rate} -> "
            f"{config.connection.port}@{config.connection.baud_rate}), renewing connection"
        )
        self._manager.stop()
        self._manager.connection = config.connection.model_copy()
        tracker.reset()
        self._sleep(self._grace_period)

        try:
            self._manager.start()
        except MixlinkError as e:
            logger.warning(f"Failed to renew connection after parameter change: {e.get_full_message()}")
        else:
            logger.debug("Renewed connection successfully")
