"""
Top-level mixlink application orchestrator.

Wires the serial link to its consumers and keeps everything in sync with the
config file. The same wiring runs headless (``mixlink run``) or underneath
the terminal monitor.
"""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

import serial

from mixlink.exceptions import ErrorContext, MixlinkError
from mixlink.monitor import AudioPeakSource, ButtonDispatcher, MediaKeyBackend, ProcessActivitySource, ProcessMonitor
from mixlink.protocols import ConnectionEvent
from mixlink.serial import ConnectionManager, ConnectionRenewer, EventBus, TelemetryTracker
from mixlink.services import ConfigFileWatcher, ConfigService

logger = logging.getLogger(__name__)


class MixlinkApp:
    """
    Top-level orchestrator for the mixer host.

    Architecture:
        MixlinkApp (this class)
        ├── ConfigService (+ ConfigFileWatcher for hot reload)
        ├── ConnectionManager ── TelemetryTracker, EventBus
        ├── ButtonDispatcher  (EventBus subscriber)
        ├── ProcessMonitor    (writes LED / peak commands)
        └── ConnectionRenewer (last config observer)

    A failed connection never stops the app: the error is logged with its
    recovery hint and the app stays up, disconnected, until reconnect() is
    called or the config changes the port.
    """

    def __init__(
        self,
        config_service: ConfigService,
        config_path: Path | None = None,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
        activity_source: ProcessActivitySource | None = None,
        audio_source: AudioPeakSource | None = None,
        media_backend: MediaKeyBackend | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config_service: Service holding the live configuration
            config_path: Config file to watch for changes (None = no hot reload)
            serial_factory: Opens serial ports (pyserial by default)
            activity_source: Running-process source for the LED monitor
            audio_source: Optional audio peak source enabling audio LED mode
            media_backend: Media key backend for buttons (logs only by default)
        """
        self.config_service = config_service
        config = config_service.get_config()

        self.tracker = TelemetryTracker(invert=config.invert_sliders, noise_threshold=config.noise_threshold)
        self.bus = EventBus()
        self.connection = ConnectionManager(
            config.connection.model_copy(),
            tracker=self.tracker,
            bus=self.bus,
            serial_factory=serial_factory,
        )
        self.monitor = ProcessMonitor(
            self.connection,
            config,
            activity_source=activity_source,
            audio_source=audio_source,
        )
        self.buttons = ButtonDispatcher(self.bus, config.button_actions, backend=media_backend)
        self.renewer = ConnectionRenewer(self.connection)

        self.watcher: ConfigFileWatcher | None = None
        if config_path is not None and config.config_watch_interval > 0:
            self.watcher = ConfigFileWatcher(config_service, config_path, config.config_watch_interval)

        self._shutdown_event = threading.Event()
        self._started = False

    def start(self) -> None:
        """Register observers, start background workers and connect."""
        if self._started:
            logger.warning("MixlinkApp is already running")
            return

        # The renewer goes last so consumers rebuild their state before the
        # slider reset makes the device re-report everything
        self.config_service.register_observer(self.monitor)
        self.config_service.register_observer(self.buttons)
        self.config_service.register_observer(self.renewer)

        self.connection.register_observer(self.monitor)
        self.connection.register_observer(self)

        with ErrorContext("start background workers", logger_instance=logger):
            self.buttons.start()
            self.monitor.start()
            if self.watcher:
                self.watcher.start()

        self._started = True
        self._shutdown_event.clear()
        self.connect()
        logger.info("MixlinkApp started")

    def connect(self) -> bool:
        """
        Try to connect to the device.

        Returns:
            True if connected, False if the attempt failed (already logged)
        """
        try:
            self.connection.start()
        except MixlinkError as e:
            logger.error(f"Failed to connect: {e.get_full_message()}")
            return False
        return True

    def reconnect(self) -> bool:
        """Drop the current connection (if any) and connect again."""
        logger.info("Reconnecting to device")
        self.connection.stop()
        self.tracker.reset()
        return self.connect()

    def shutdown(self) -> None:
        """Stop everything in reverse start order."""
        if not self._started:
            return

        logger.info("Shutting down MixlinkApp")
        if self.watcher:
            self.watcher.stop()
        self.monitor.stop()
        self.buttons.stop()
        self.connection.stop()

        self.connection.unregister_observer(self)
        self.connection.unregister_observer(self.monitor)
        self.config_service.unregister_observer(self.renewer)
        self.config_service.unregister_observer(self.buttons)
        self.config_service.unregister_observer(self.monitor)

        self._started = False
        self._shutdown_event.set()

    def request_shutdown(self) -> None:
        """Ask a blocking run() to return."""
        self._shutdown_event.set()

    def run(self) -> None:
        """Start (if needed) and block until interrupted (Ctrl+C) or request_shutdown()."""
        if not self._started:
            self.start()
        try:
            while not self._shutdown_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.shutdown()

    def on_connection_event(self, event: ConnectionEvent, port: str | None = None, error: Exception | None = None) -> None:
        """Log connection changes (ConnectionObserver protocol)."""
        if event is ConnectionEvent.CONNECTION_LOST:
            logger.error(f"Lost connection to {port}: {error}. Restart or edit the config to reconnect.")
