"""Configuration models for mixlink."""

from .config import AUTO_PORT, DEFAULT_CONFIG_PATH, AppConfig, ConnectionConfig
from .enums import LEDMode, MediaAction, NoiseReduction

__all__ = [
    "AUTO_PORT",
    "DEFAULT_CONFIG_PATH",
    # Models
    "AppConfig",
    "ConnectionConfig",
    # Enums
    "LEDMode",
    "MediaAction",
    "NoiseReduction",
]
