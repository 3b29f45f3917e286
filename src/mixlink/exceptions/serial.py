"""Serial link exceptions.

This module defines exceptions for the device connection:
- SerialTransportError: Base class for port open/read/write failures
- SerialOpenError: Port could not be opened or configured
- SerialWriteError: A command line could not be written
- PortNotFoundError: Auto-detection found no device
- ConnectionStateError: Base class for usage errors
- NotConnectedError: Write attempted while disconnected
- AlreadyConnectedError: Start attempted while a connection is active
"""

from .base import MixlinkError


class SerialTransportError(MixlinkError):
    """Serial port operation failed."""
    pass


class SerialOpenError(SerialTransportError):
    """Serial port could not be opened or configured."""

    def __init__(
        self,
        port: str,
        original_error: str | None = None,
        reason: str | None = None,
        recovery_hint: str | None = None,
    ):
        """
        Initialize port-open error.

        Args:
            port: The port that failed to open
            original_error: The original error message from pyserial / the OS
            reason: Short human-readable cause, if one was detected
            recovery_hint: Suggestion overriding the default hint
        """
        user_msg = f"Could not open serial port {port}"
        if reason:
            user_msg += f": {reason}"

        tech_msg = user_msg
        if original_error:
            tech_msg += f"\nOriginal error: {original_error}"

        super().__init__(
            user_message=user_msg,
            technical_message=tech_msg,
            port=port,
            recoverable=True,
            recovery_hint=recovery_hint or (
                "Check that the device is plugged in and that the port in your "
                "configuration is correct. Run 'mixlink ports list' to see available ports."
            ),
        )


class SerialWriteError(SerialTransportError):
    """A command could not be written to the device."""

    def __init__(self, port: str | None, command: str, original_error: str | None = None):
        """
        Initialize write error.

        Args:
            port: The connected port
            command: The command line that failed (without terminator)
            original_error: The original error message
        """
        super().__init__(
            user_message=f"Failed to send '{command}' to the device",
            technical_message=f"Write of {command!r} to {port} failed: {original_error}",
            port=port,
            recoverable=True,
        )
        self.command = command


class PortNotFoundError(SerialTransportError):
    """No serial port answered with the expected protocol."""

    def __init__(self, baud_rate: int, candidates: list[str] | None = None):
        """
        Initialize port-not-found error.

        Args:
            baud_rate: Baud rate used while probing
            candidates: Ports that were probed
        """
        probed = ", ".join(candidates) if candidates else "none"
        super().__init__(
            user_message="No mixer device found on any serial port",
            technical_message=f"Probed ports at {baud_rate} baud: {probed}",
            recoverable=True,
            recovery_hint=(
                "Make sure the device is connected and sending slider data, "
                "and that the baud rate matches the firmware. "
                "Run 'mixlink ports probe' to test each port."
            ),
        )
        self.baud_rate = baud_rate
        self.candidates = candidates or []


class ConnectionStateError(MixlinkError):
    """Operation is not valid in the current connection state."""
    pass


class NotConnectedError(ConnectionStateError):
    """Operation requires an active connection."""

    def __init__(self, operation: str = "send"):
        super().__init__(
            user_message=f"Cannot {operation}: not connected to the device",
            recoverable=True,
        )
        self.operation = operation


class AlreadyConnectedError(ConnectionStateError):
    """A connection is already active."""

    def __init__(self, port: str | None = None):
        super().__init__(
            user_message="A serial connection is already active",
            technical_message=f"Connection already active on {port}",
            recoverable=True,
            recovery_hint="Stop the current connection before starting another one.",
            port=port,
        )
