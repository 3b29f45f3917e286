"""Terminal UI for watching the mixer live."""

from .app import MonitorApp

__all__ = ["MonitorApp"]
