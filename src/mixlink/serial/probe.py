"""Serial port discovery by protocol probing."""

import logging
import time
from collections.abc import Callable

import serial
from serial.tools import list_ports

from mixlink.serial.codec import is_telemetry_line
from mixlink.serial.framer import MAX_LINE_LENGTH, LineFramer

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 2.0
PROBE_READ_TIMEOUT = 0.1
REQUIRED_VALID_LINES = 2
PROBE_READ_SIZE = 256


class PortProbe:
    """
    Finds the mixer by listening on each serial port for telemetry lines.

    A port is accepted once it produces ``required_valid_lines`` complete
    lines matching the telemetry pattern within ``probe_timeout`` seconds.
    Reads use a short timeout so a silent or dead port gives up quickly
    instead of blocking the whole scan.

    The serial factory, port lister and clock are injectable for testing.
    """

    def __init__(
        self,
        serial_factory: Callable[..., serial.Serial] = serial.Serial,
        port_lister: Callable[[], list] = list_ports.comports,
        probe_timeout: float = PROBE_TIMEOUT,
        read_timeout: float = PROBE_READ_TIMEOUT,
        required_valid_lines: int = REQUIRED_VALID_LINES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._serial_factory = serial_factory
        self._port_lister = port_lister
        self._probe_timeout = probe_timeout
        self._read_timeout = read_timeout
        self._required_valid_lines = required_valid_lines
        self._clock = clock

    def candidate_ports(self) -> list[str]:
        """
        List serial device names known to the OS.

        Returns:
            Device names (e.g. "COM4", "/dev/ttyACM0"); empty if enumeration fails
        """
        try:
            ports = self._port_lister()
        except Exception as e:
            logger.warning(f"Failed to enumerate serial ports: {e}")
            return []

        # comports() yields ListPortInfo objects; plain strings are accepted too
        return [getattr(p, "device", p) for p in ports]

    def probe_port(self, port: str, baud_rate: int) -> bool:
        """
        Check whether a port speaks the mixer protocol.

        Args:
            port: Device name to probe
            baud_rate: Baud rate to open the port with

        Returns:
            True if enough valid telemetry lines arrived before the deadline
        """
        try:
            conn = self._serial_factory(
                port,
                baudrate=baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._read_timeout,
            )
        except (serial.SerialException, OSError, ValueError) as e:
            logger.debug(f"Skipping {port} (can't open): {e}")
            return False

        try:
            return self._listen(conn, port)
        finally:
            try:
                conn.close()
            except Exception as e:
                logger.debug(f"Error closing probed port {port}: {e}")

    def _listen(self, conn, port: str) -> bool:
        framer = LineFramer(max_pending=MAX_LINE_LENGTH)
        valid_lines = 0
        deadline = self._clock() + self._probe_timeout

        while self._clock() < deadline:
            try:
                data = conn.read(PROBE_READ_SIZE)
            except (serial.SerialException, OSError) as e:
                logger.debug(f"Read error while probing {port}: {e}")
                return False

            for line in framer.feed(data):
                if is_telemetry_line(line):
                    valid_lines += 1
                    if valid_lines >= self._required_valid_lines:
                        return True

        logger.debug(f"No mixer telemetry on {port} ({valid_lines} valid lines)")
        return False

    def find_port(self, baud_rate: int) -> str | None:
        """
        Probe every candidate port in order.

        Args:
            baud_rate: Baud rate to probe with

        Returns:
            The first port that answers with telemetry, or None
        """
        ports = self.candidate_ports()
        if not ports:
            logger.debug("No serial ports found")
            return None

        logger.debug(f"Scanning serial ports: {ports}")
        for port in ports:
            if self.probe_port(port, baud_rate):
                logger.info(f"Found mixer on {port}")
                return port

        logger.debug("No mixer found on any port")
        return None
