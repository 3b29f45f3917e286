"""Domain events for the serial link.

This module defines what can happen on and around the device link:
- Device events: Slider moves and button presses decoded from the wire
- Connection events: Lifecycle of the serial connection
- Config events: Configuration loaded, changed or saved
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class SliderMoveEvent:
    """A slider moved by more than the noise threshold."""

    index: int      # 0-based slider position on the device
    value: float    # Normalized 0.0-1.0, already inverted if configured


@dataclass(frozen=True)
class ButtonEvent:
    """A button on the device was pressed."""

    button_id: str  # Opaque identifier sent by the firmware ("0", "1", ...)


DeviceEvent = SliderMoveEvent | ButtonEvent


class ConnectionEvent(Enum):
    """Events from the serial connection lifecycle."""

    CONNECTED = "connected"              # Port opened, read loop running
    DISCONNECTED = "disconnected"        # Stopped on request
    CONNECTION_LOST = "connection_lost"  # Read loop died (unplugged, I/O error)


class ConfigEvent(Enum):
    """Events from configuration changes."""

    CONFIG_LOADED = "config_loaded"    # Config (re)loaded from disk
    CONFIG_UPDATED = "config_updated"  # Value(s) changed in memory
    CONFIG_SAVED = "config_saved"      # Config written to disk
    CONFIG_RESET = "config_reset"      # Config reset to defaults
