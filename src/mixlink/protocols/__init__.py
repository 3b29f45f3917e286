"""Protocol definitions for events and observers.

- Events: device events (slider moves, buttons), connection and config events
- Observers: Protocols for components that react to these events
"""

from .events import (
    ButtonEvent,
    ConfigEvent,
    ConnectionEvent,
    DeviceEvent,
    SliderMoveEvent,
)
from .observers import ConfigObserver, ConnectionObserver

__all__ = [
    # Events
    "ButtonEvent",
    "ConfigEvent",
    "ConnectionEvent",
    "DeviceEvent",
    "SliderMoveEvent",
    # Observers
    "ConfigObserver",
    "ConnectionObserver",
]
