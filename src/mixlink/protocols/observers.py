"""Observer protocol definitions.

- Connection observers: React to the serial link going up or down
- Config observers: React to configuration reloads and updates
"""

from typing import Optional, Protocol, runtime_checkable

from .events import ConfigEvent, ConnectionEvent


@runtime_checkable
class ConnectionObserver(Protocol):
    """
    Observer that receives serial connection lifecycle events.

    Lets the UI and monitors follow the link state without holding a
    reference to the connection's internals.
    """

    def on_connection_event(
        self,
        event: ConnectionEvent,
        port: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        """
        Handle connection state changes.

        Args:
            event: The type of connection event
            port: The port involved
            error: The error that ended the connection (CONNECTION_LOST only)

        Note:
            CONNECTION_LOST is delivered from the read-loop thread. Do not call
            stop() or start() synchronously from here; schedule it instead.
        """
        ...


@runtime_checkable
class ConfigObserver(Protocol):
    """Observer that receives configuration events."""

    def on_config_event(self, event: ConfigEvent, **kwargs) -> None:
        """
        Handle configuration events.

        Args:
            event: The type of config event
            **kwargs: Event-specific data:
                - CONFIG_LOADED: 'path', 'config'
                - CONFIG_SAVED: 'path'
                - CONFIG_UPDATED: 'keys', 'values'
                - CONFIG_RESET: 'config'

        Threading:
            Called from the thread that initiated the change, in observer
            registration order. Exceptions are caught and logged.
        """
        ...
