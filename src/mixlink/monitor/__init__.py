"""Upstream consumers: LED/display monitor and button dispatcher."""

from .media_keys import ButtonDispatcher, LoggingMediaKeys, MediaKeyBackend
from .process_monitor import AudioPeakSource, ProcessActivitySource, ProcessMonitor

__all__ = [
    "AudioPeakSource",
    "ButtonDispatcher",
    "LoggingMediaKeys",
    "MediaKeyBackend",
    "ProcessActivitySource",
    "ProcessMonitor",
]
