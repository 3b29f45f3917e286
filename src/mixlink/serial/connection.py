"""Serial connection lifecycle, read loop and command writer."""

import logging
import threading
from collections.abc import Callable, Mapping
from enum import Enum

import serial

from mixlink.exceptions import (
    AlreadyConnectedError,
    NotConnectedError,
    PortNotFoundError,
    SerialWriteError,
    wrap_serial_error,
)
from mixlink.models.config import ConnectionConfig
from mixlink.protocols import ButtonEvent, ConnectionEvent, ConnectionObserver
from mixlink.serial.bus import EventBus, OverflowPolicy, Subscription
from mixlink.serial.codec import (
    ButtonMessage,
    TelemetryFrame,
    decode_line,
    encode_all_led_states,
    encode_audio_peaks,
    encode_led_state,
)
from mixlink.serial.framer import MAX_LINE_LENGTH, LineFramer
from mixlink.serial.probe import PortProbe
from mixlink.serial.telemetry import TelemetryTracker
from mixlink.utils import ObserverManager

logger = logging.getLogger(__name__)

READ_TIMEOUT = 0.1
MAX_READ_SIZE = 1024
JOIN_TIMEOUT = 1.0


class ConnectionState(Enum):
    """Lifecycle of a ConnectionManager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionManager:
    """
    Owns the serial link to the mixer.

    start() opens the port (auto-detecting it if configured), asserts DTR and
    spawns a read thread. The read thread frames incoming bytes into lines,
    decodes them, runs telemetry through the TelemetryTracker and publishes
    the resulting events on the EventBus. Commands are written from any
    thread through the send_* methods, serialized by a writer lock.

    A read error closes the port and moves back to DISCONNECTED; there is no
    automatic retry. Observers learn about CONNECTED, DISCONNECTED and
    CONNECTION_LOST through ConnectionObserver.on_connection_event.

    Threading:
        _state_lock guards the state, port handle and thread reference.
        _write_lock serializes writes. Observers are notified with no lock held.
    """

    def __init__(
        self,
        connection: ConnectionConfig | None = None,
        tracker: TelemetryTracker | None = None,
        bus: EventBus | None = None,
        probe: PortProbe | None = None,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
        read_timeout: float = READ_TIMEOUT,
    ):
        """
        Initialize the connection manager.

        Args:
            connection: Port and baud rate to use (defaults to auto-detect at 9600)
            tracker: Slider state tracker (a fresh one if None)
            bus: Event bus to publish device events on (a fresh one if None)
            probe: Port prober used for auto-detection
            serial_factory: Callable that opens a port, pyserial-compatible
            read_timeout: Read timeout so the read loop can notice stop requests
        """
        self.connection = connection or ConnectionConfig()
        self.tracker = tracker or TelemetryTracker()
        self.bus = bus or EventBus()
        self._serial_factory = serial_factory
        self._probe = probe or PortProbe(serial_factory=serial_factory)
        self._read_timeout = read_timeout

        self._state = ConnectionState.DISCONNECTED
        self._conn: serial.Serial | None = None
        self._port: str | None = None
        self._read_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        self._state_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._observers = ObserverManager[ConnectionObserver]("on_connection_event")

    # =================================================================
    # Observers
    # =================================================================

    def register_observer(self, observer: ConnectionObserver) -> None:
        """Register an observer for connection events."""
        self._observers.register(observer)

    def unregister_observer(self, observer: ConnectionObserver) -> None:
        """Unregister a connection observer."""
        self._observers.unregister(observer)

    def _notify_observers(self, event: ConnectionEvent, **kwargs) -> None:
        self._observers.notify(event, **kwargs)

    def subscribe(self, maxsize: int = 0, overflow: OverflowPolicy = OverflowPolicy.BLOCK) -> Subscription:
        """Subscribe to device events (shortcut for ``self.bus.subscribe``)."""
        return self.bus.subscribe(maxsize=maxsize, overflow=overflow)

    # =================================================================
    # State
    # =================================================================

    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        """Check if the serial link is up."""
        return self.state is ConnectionState.CONNECTED

    @property
    def current_port(self) -> str | None:
        """Port of the active connection, if any."""
        with self._state_lock:
            return self._port

    # =================================================================
    # Lifecycle
    # =================================================================

    def start(self) -> None:
        """
        Connect to the device and start reading.

        Raises:
            AlreadyConnectedError: If a connection is active or being set up
            PortNotFoundError: If auto-detection found no device
            SerialOpenError: If the port could not be opened
        """
        with self._state_lock:
            if self._state is not ConnectionState.DISCONNECTED:
                logger.warning("Already connected, can't start another without closing first")
                raise AlreadyConnectedError(self._port)
            self._state = ConnectionState.CONNECTING

        try:
            port = self._resolve_port()
            conn = self._open_port(port)
        except Exception:
            with self._state_lock:
                self._state = ConnectionState.DISCONNECTED
            raise

        # CH340-based boards only talk back once DTR is asserted
        try:
            conn.dtr = True
        except (serial.SerialException, OSError, ValueError) as e:
            logger.warning(f"Failed to set DTR on {port}: {e}")

        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._read_loop,
            args=(conn, port, stop_event),
            name=f"mixlink-serial-{port}",
            daemon=True,
        )

        with self._state_lock:
            self._conn = conn
            self._port = port
            self._read_thread = thread
            self._stop_event = stop_event
            self._state = ConnectionState.CONNECTED

        thread.start()
        logger.info(f"Connected to {port} at {self.connection.baud_rate} baud")
        self._notify_observers(ConnectionEvent.CONNECTED, port=port)

    def stop(self) -> None:
        """
        Close the connection and wait for the read thread to finish.

        Returns once the port is closed. Safe to call when not connected.
        """
        with self._state_lock:
            if self._state is not ConnectionState.CONNECTED:
                logger.debug("Not currently connected, nothing to stop")
                return
            conn = self._conn
            port = self._port
            thread = self._read_thread
            stop_event = self._stop_event
            self._conn = None
            self._port = None
            self._read_thread = None
            self._state = ConnectionState.DISCONNECTED

        logger.debug(f"Shutting down serial connection on {port}")
        stop_event.set()

        if thread and thread is not threading.current_thread():
            thread.join(timeout=self._read_timeout + JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"Serial read thread for {port} did not exit in time")

        self._close_port(conn, port)
        logger.info(f"Disconnected from {port}")
        self._notify_observers(ConnectionEvent.DISCONNECTED, port=port)

    def _resolve_port(self) -> str:
        if not self.connection.is_auto:
            return self.connection.port.strip()

        baud_rate = self.connection.baud_rate
        logger.info("No serial port configured, probing for the mixer")
        port = self._probe.find_port(baud_rate)
        if port is None:
            raise PortNotFoundError(baud_rate, self._probe.candidate_ports())
        return port

    def _open_port(self, port: str) -> serial.Serial:
        logger.debug(f"Attempting serial connection to {port} at {self.connection.baud_rate} baud")
        try:
            return self._serial_factory(
                port,
                baudrate=self.connection.baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._read_timeout,
            )
        except (serial.SerialException, OSError, ValueError) as e:
            logger.warning(f"Failed to open serial connection on {port}: {e}")
            raise wrap_serial_error(e, port) from e

    @staticmethod
    def _close_port(conn: serial.Serial | None, port: str | None) -> None:
        if conn is None:
            return
        try:
            conn.close()
        except Exception as e:
            logger.error(f"Error closing serial port {port}: {e}")

    # =================================================================
    # Read loop
    # =================================================================

    def _read_loop(self, conn: serial.Serial, port: str, stop_event: threading.Event) -> None:
        """Read, frame and dispatch lines until stopped or the port fails."""
        framer = LineFramer(max_pending=MAX_LINE_LENGTH)
        logger.debug(f"Read loop started on {port}")

        while not stop_event.is_set():
            try:
                data = conn.read(min(max(conn.in_waiting, 1), MAX_READ_SIZE))
            except (serial.SerialException, OSError, TypeError, AttributeError) as e:
                # Closing the port under a pending read surfaces as an error too
                if stop_event.is_set():
                    break
                self._handle_connection_lost(conn, port, e)
                return

            for line in framer.feed(data):
                self._handle_line(line)

        logger.debug(f"Read loop on {port} exited")

    def _handle_line(self, line: str) -> None:
        logger.debug(f"Read line: {line!r}")
        message = decode_line(line)

        if isinstance(message, ButtonMessage):
            logger.debug(f"Button pressed: {message.button_id}")
            self.bus.publish(ButtonEvent(message.button_id))
        elif isinstance(message, TelemetryFrame):
            self.bus.publish_all(self.tracker.process(message))

    def _handle_connection_lost(self, conn: serial.Serial, port: str, error: Exception) -> None:
        with self._state_lock:
            # stop() may have taken over concurrently
            if self._conn is not conn:
                return
            self._conn = None
            self._port = None
            self._read_thread = None
            self._state = ConnectionState.DISCONNECTED

        logger.warning(f"Lost connection to {port}: {error}")
        self._close_port(conn, port)
        self._notify_observers(ConnectionEvent.CONNECTION_LOST, port=port, error=error)

    # =================================================================
    # Commands
    # =================================================================

    def send_led_state(self, index: int, on: bool) -> None:
        """
        Turn one slider LED on or off.

        Raises:
            NotConnectedError: If not connected
            SerialWriteError: If the write fails
        """
        self._write(encode_led_state(index, on), "send LED state")

    def send_all_led_states(self, states: Mapping[int, bool], num_sliders: int) -> None:
        """
        Send every LED state in one batched command.

        Raises:
            NotConnectedError: If not connected
            SerialWriteError: If the write fails
        """
        self._write(encode_all_led_states(states, num_sliders), "send LED states")

    def send_audio_peaks(self, peaks: Mapping[int, int], names: Mapping[int, str], num_sliders: int) -> None:
        """
        Send per-slider audio peaks and app labels for the device display.

        Raises:
            NotConnectedError: If not connected
            SerialWriteError: If the write fails
        """
        self._write(encode_audio_peaks(peaks, names, num_sliders), "send audio peaks")

    def _write(self, command: str, operation: str) -> None:
        with self._state_lock:
            conn = self._conn
            port = self._port
            connected = self._state is ConnectionState.CONNECTED

        if not connected or conn is None:
            raise NotConnectedError(operation)

        with self._write_lock:
            try:
                conn.write(command.encode("ascii", errors="replace"))
            except (serial.SerialException, OSError, TypeError, AttributeError) as e:
                logger.warning(f"Failed to {operation} on {port}: {e}")
                raise SerialWriteError(port, command.rstrip("\n"), str(e)) from e

        logger.debug(f"Sent command: {command.rstrip()}")

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop()
