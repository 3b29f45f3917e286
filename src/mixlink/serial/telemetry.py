"""Slider state tracking and noise-gated change detection."""

import logging
import threading

from mixlink.protocols.events import SliderMoveEvent
from mixlink.serial.codec import MAX_RAW_VALUE, TelemetryFrame

logger = logging.getLogger(__name__)

# Impossible slider value; forces the next real sample to be reported
UNSET = -1.0

DEFAULT_NOISE_THRESHOLD = 0.012


def normalize(raw: int, invert: bool = False) -> float:
    """
    Map a raw 0-1023 reading to a 0.0-1.0 volume with two decimals.

    Args:
        raw: Raw ADC value from the device
        invert: Return the complement (for sliders mounted upside down)
    """
    value = round(raw / MAX_RAW_VALUE, 2)
    if invert:
        value = round(1.0 - value, 2)
    return value


class TelemetryTracker:
    """
    Keeps the last reported value of every slider and turns telemetry frames
    into move events.

    A slider's new value is reported only when it differs from the last
    reported value by more than the noise threshold. When the number of
    values per frame changes (device replugged, firmware changed) every slot
    is reset to UNSET so the next frame reports all sliders.

    Threading:
        The read loop is the only caller of process(). reset() and
        configure() may be called from other threads (config reload); all
        state is guarded by one lock.
    """

    def __init__(self, invert: bool = False, noise_threshold: float = DEFAULT_NOISE_THRESHOLD):
        self._invert = invert
        self._noise_threshold = noise_threshold
        self._values: list[float] = []
        self._slider_count = 0
        self._lock = threading.Lock()

    def process(self, frame: TelemetryFrame) -> list[SliderMoveEvent]:
        """
        Apply one frame and return the resulting move events.

        Args:
            frame: Decoded telemetry frame

        Returns:
            One event per slider that moved significantly, in ascending index order
        """
        events = []
        with self._lock:
            count = len(frame.values)
            if count != self._slider_count:
                logger.info(f"Detected {count} sliders")
                self._slider_count = count
                self._values = [UNSET] * count

            for index, raw in enumerate(frame.values):
                value = normalize(raw, self._invert)
                if abs(value - self._values[index]) > self._noise_threshold:
                    self._values[index] = value
                    events.append(SliderMoveEvent(index, value))

        for event in events:
            logger.debug(f"Slider moved: {event.index} -> {event.value:.2f}")

        return events

    def reset(self) -> None:
        """Forget all slider state so the next frame reports every slider."""
        with self._lock:
            self._slider_count = 0
            self._values = []
        logger.debug("Slider state reset")

    def configure(self, invert: bool | None = None, noise_threshold: float | None = None) -> None:
        """
        Update slider settings (used on config reload).

        Args:
            invert: New inversion flag, or None to keep the current one
            noise_threshold: New noise threshold, or None to keep the current one
        """
        with self._lock:
            if invert is not None:
                self._invert = invert
            if noise_threshold is not None:
                self._noise_threshold = noise_threshold

    @property
    def slider_count(self) -> int:
        """Number of sliders in the last frame (0 before the first frame)."""
        with self._lock:
            return self._slider_count

    @property
    def invert(self) -> bool:
        with self._lock:
            return self._invert

    @property
    def noise_threshold(self) -> float:
        with self._lock:
            return self._noise_threshold

    def values(self) -> list[float]:
        """Snapshot of the last reported value per slider (UNSET if none yet)."""
        with self._lock:
            return list(self._values)
