"""Enumerations for mixlink configuration."""

from enum import Enum


class NoiseReduction(str, Enum):
    """Named noise-gate levels for slider readings."""

    LOW = "low"          # Most responsive, may jitter on cheap pots
    DEFAULT = "default"
    HIGH = "high"        # Ignore small wobbles

    @property
    def threshold(self) -> float:
        """Minimum normalized delta that counts as a real move."""
        return _NOISE_THRESHOLDS[self]


_NOISE_THRESHOLDS = {
    NoiseReduction.LOW: 0.0035,
    NoiseReduction.DEFAULT: 0.012,
    NoiseReduction.HIGH: 0.035,
}


class LEDMode(str, Enum):
    """What drives the per-slider LEDs."""

    PROCESS = "process"  # LED on while a mapped process is running
    AUDIO = "audio"      # LED on while a mapped process is producing sound


class MediaAction(str, Enum):
    """Media keys a device button can trigger."""

    PLAY_PAUSE = "play_pause"
    NEXT_TRACK = "next_track"
    PREV_TRACK = "prev_track"
