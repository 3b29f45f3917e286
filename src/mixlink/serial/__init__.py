"""Serial transport: framing, wire codec, discovery, telemetry and connection."""

from .bus import EventBus, OverflowPolicy, Subscription
from .codec import (
    ButtonMessage,
    TelemetryFrame,
    decode_all_led_states,
    decode_audio_peaks,
    decode_led_state,
    decode_line,
    encode_all_led_states,
    encode_audio_peaks,
    encode_led_state,
    shorten_app_name,
)
from .connection import ConnectionManager, ConnectionState
from .framer import LineFramer
from .probe import PortProbe
from .reconnect import ConnectionRenewer
from .telemetry import UNSET, TelemetryTracker

__all__ = [
    # Transport
    "ConnectionManager",
    "ConnectionRenewer",
    "ConnectionState",
    "LineFramer",
    "PortProbe",
    # Codec
    "ButtonMessage",
    "TelemetryFrame",
    "decode_all_led_states",
    "decode_audio_peaks",
    "decode_led_state",
    "decode_line",
    "encode_all_led_states",
    "encode_audio_peaks",
    "encode_led_state",
    "shorten_app_name",
    # Events
    "EventBus",
    "OverflowPolicy",
    "Subscription",
    "TelemetryTracker",
    "UNSET",
]
