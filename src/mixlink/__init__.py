"""mixlink: host side of a serial hardware volume mixer."""

__version__ = "0.1.0"

from .app import MixlinkApp
from .serial import ConnectionManager, EventBus, PortProbe, TelemetryTracker

__all__ = [
    "ConnectionManager",
    "EventBus",
    "MixlinkApp",
    "PortProbe",
    "TelemetryTracker",
]
