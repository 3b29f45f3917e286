"""Drives the slider LEDs and display from running processes or audio output.

Two modes:
    process: a slider's LED is on while any of its mapped processes runs
    audio:   a slider's LED is on while any of its mapped processes plays
             sound; per-slider peaks and app labels go to the display too
"""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

import psutil

from mixlink.exceptions import MixlinkError
from mixlink.models.config import AppConfig
from mixlink.models.enums import LEDMode
from mixlink.protocols import ConfigEvent, ConnectionEvent

logger = logging.getLogger(__name__)

# Targets that are audio sessions rather than processes
MASTER_TARGET = "master"
MIC_TARGET = "mic"
SYSTEM_TARGET = "system"
ALWAYS_PRESENT_TARGETS = frozenset({MASTER_TARGET, MIC_TARGET, SYSTEM_TARGET})

# Targets that never map to one specific process
UNMAPPED_TARGET = "mixlink.unmapped"
CURRENT_WINDOW_TARGET = "mixlink.current"
NEVER_ACTIVE_TARGETS = frozenset({UNMAPPED_TARGET, CURRENT_WINDOW_TARGET})

AUDIO_ACTIVE_THRESHOLD = 0.001


@runtime_checkable
class AudioPeakSource(Protocol):
    """Supplies the current audio peak of every process producing sound."""

    def get_peak_levels(self) -> dict[str, float]:
        """
        Returns:
            Peak level 0.0-1.0 keyed by lowercase process name (e.g. "spotify.exe")
        """
        ...


class LEDSink(Protocol):
    """The subset of ConnectionManager the monitor writes to."""

    def send_led_state(self, index: int, on: bool) -> None: ...

    def send_all_led_states(self, states: Mapping[int, bool], num_sliders: int) -> None: ...

    def send_audio_peaks(self, peaks: Mapping[int, int], names: Mapping[int, str], num_sliders: int) -> None: ...


class ProcessActivitySource:
    """Reports which processes are running, using psutil."""

    def get_running_processes(self) -> set[str]:
        """Lowercase executable names of every running process."""
        names = set()
        for proc in psutil.process_iter(["name"]):
            name = proc.info.get("name")
            if name:
                names.add(name.lower())
        return names


class ProcessMonitor:
    """
    Periodically checks mapped targets and keeps the device LEDs in sync.

    Only LED changes are sent, one ``#L`` command per changed slider. When
    led_refresh_interval is set, the whole LED vector is resent as one batch
    on that period so the device recovers from missed commands.

    Write failures never stop the loop; they are logged at debug level and
    the next check tries again.
    """

    def __init__(
        self,
        sink: LEDSink,
        config: AppConfig,
        activity_source: ProcessActivitySource | None = None,
        audio_source: AudioPeakSource | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the monitor.

        Args:
            sink: Where LED/peak commands go (normally the ConnectionManager)
            config: Slider mapping, mode and intervals
            activity_source: Running-process source for process mode
            audio_source: Peak-level source for audio mode; without one the
                monitor falls back to process mode
            clock: Monotonic clock, injectable for tests
        """
        self._sink = sink
        self._activity_source = activity_source or ProcessActivitySource()
        self._audio_source = audio_source
        self._clock = clock

        self._config = config
        self._config_lock = threading.Lock()

        self._last_states: dict[int, bool] = {}
        self._last_peaks: dict[int, int] = {}
        self._state_lock = threading.Lock()

        self._running = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self._warn_missing_audio_source(config)

    def _warn_missing_audio_source(self, config: AppConfig) -> None:
        if config.led_mode is LEDMode.AUDIO and self._audio_source is None:
            logger.warning("Audio LED mode needs an audio peak source, falling back to process mode")

    # =================================================================
    # Configuration
    # =================================================================

    @property
    def audio_mode(self) -> bool:
        """True when LEDs follow audio output rather than running processes."""
        with self._config_lock:
            return self._config.led_mode is LEDMode.AUDIO and self._audio_source is not None

    @property
    def check_interval(self) -> float:
        with self._config_lock:
            config = self._config
        return config.audio_check_interval if self.audio_mode else config.process_check_interval

    @property
    def num_sliders(self) -> int:
        """Number of LED slots (highest mapped slider index + 1)."""
        with self._config_lock:
            return self._config.num_sliders

    def update_config(self, config: AppConfig) -> None:
        """Switch to a new config; every LED is resent on the next check."""
        with self._config_lock:
            self._config = config
        with self._state_lock:
            self._last_states.clear()
            self._last_peaks.clear()
        self._warn_missing_audio_source(config)
        logger.debug("Process monitor picked up new configuration")

    def on_config_event(self, event: ConfigEvent, **kwargs: Any) -> None:
        """Handle configuration events (ConfigObserver protocol)."""
        if event in (ConfigEvent.CONFIG_LOADED, ConfigEvent.CONFIG_RESET):
            config = kwargs.get("config")
            if config is not None:
                self.update_config(config)

    def on_connection_event(self, event: ConnectionEvent, port: str | None = None, error: Exception | None = None) -> None:
        """Resend every LED after a (re)connect (ConnectionObserver protocol)."""
        if event is ConnectionEvent.CONNECTED:
            with self._state_lock:
                self._last_states.clear()

    # =================================================================
    # Checks
    # =================================================================

    @property
    def led_states(self) -> dict[int, bool]:
        """Snapshot of the last known LED state per slider."""
        with self._state_lock:
            return dict(self._last_states)

    @property
    def peaks(self) -> dict[int, int]:
        """Snapshot of the last sent audio peak per slider."""
        with self._state_lock:
            return dict(self._last_peaks)

    def check_once(self) -> None:
        """Run one check and send any LED changes (and peaks in audio mode)."""
        with self._config_lock:
            config = self._config
        audio_mode = self.audio_mode

        peak_levels: dict[str, float] | None = None
        try:
            if audio_mode:
                peak_levels = {k.lower(): v for k, v in self._audio_source.get_peak_levels().items()}
                active = {name for name, level in peak_levels.items() if level > AUDIO_ACTIVE_THRESHOLD}
            else:
                active = self._activity_source.get_running_processes()
        except Exception as e:
            logger.warning(f"Failed to query {'audio levels' if audio_mode else 'processes'}: {e}")
            return

        peaks: dict[int, int] = {}
        names: dict[int, str] = {}

        for index in sorted(config.slider_mapping):
            targets = [t.lower() for t in config.slider_mapping[index]]
            on = self._is_any_target_active(targets, active, audio_mode)

            if peak_levels is not None:
                peaks[index], names[index] = self._loudest_target(targets, peak_levels)

            with self._state_lock:
                changed = self._last_states.get(index) != on

            # Unsent states stay stale so the next check retries them
            if changed:
                try:
                    self._sink.send_led_state(index, on)
                except MixlinkError as e:
                    logger.debug(f"Failed to update LED {index}: {e}")
                else:
                    with self._state_lock:
                        self._last_states[index] = on
                    logger.info(f"LED state changed: slider {index} {'on' if on else 'off'}")

        num_sliders = config.num_sliders
        if peak_levels is not None and num_sliders > 0:
            with self._state_lock:
                self._last_peaks = dict(peaks)
            try:
                self._sink.send_audio_peaks(peaks, names, num_sliders)
            except MixlinkError as e:
                logger.debug(f"Failed to send audio peaks: {e}")

    def refresh_all_leds(self) -> None:
        """Resend every known LED state as one batched command."""
        num_sliders = self.num_sliders
        if num_sliders == 0:
            return
        try:
            self._sink.send_all_led_states(self.led_states, num_sliders)
        except MixlinkError as e:
            logger.debug(f"Failed to refresh LED states: {e}")

    @staticmethod
    def _is_any_target_active(targets: list[str], active: set[str], audio_mode: bool) -> bool:
        for target in targets:
            # Audio sessions like master always exist
            if not audio_mode and target in ALWAYS_PRESENT_TARGETS:
                return True
            if target in NEVER_ACTIVE_TARGETS:
                continue
            if target in active:
                return True
        return False

    @staticmethod
    def _loudest_target(targets: list[str], peak_levels: Mapping[str, float]) -> tuple[int, str]:
        peak = 0
        name = ""
        for target in targets:
            level = peak_levels.get(target)
            if level is None:
                continue
            level_int = int(level * 100)
            if level_int > peak:
                peak = level_int
                name = target.removesuffix(".exe")
        return peak, name

    # =================================================================
    # Lifecycle
    # =================================================================

    def start(self) -> None:
        """Start the monitor thread (runs an initial check immediately)."""
        if self._running:
            logger.warning("ProcessMonitor is already running")
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._monitor_loop, name="mixlink-process-monitor", daemon=True)
        self._thread.start()
        logger.info(f"{'Audio' if self.audio_mode else 'Process'} mode enabled, LEDs will track "
                    f"{'audio output' if self.audio_mode else 'running processes'}")

    def stop(self) -> None:
        """Stop the monitor thread."""
        self._running = False
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None
        logger.debug("Process monitor stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def _monitor_loop(self) -> None:
        logger.debug(f"Monitor loop started (check interval {self.check_interval}s)")
        next_check = self._clock()
        next_refresh = None

        while not self._stop_event.is_set():
            now = self._clock()

            if now >= next_check:
                self._run_safely(self.check_once)
                next_check = now + self.check_interval

            with self._config_lock:
                refresh_interval = self._config.led_refresh_interval
            if refresh_interval > 0:
                if next_refresh is None:
                    next_refresh = now + refresh_interval
                elif now >= next_refresh:
                    self._run_safely(self.refresh_all_leds)
                    next_refresh = now + refresh_interval
            else:
                next_refresh = None

            deadline = next_check if next_refresh is None else min(next_check, next_refresh)
            self._stop_event.wait(max(0.0, deadline - self._clock()))

    @staticmethod
    def _run_safely(func: Callable[[], None]) -> None:
        try:
            func()
        except Exception as e:
            logger.error(f"Error in process monitor: {e}", exc_info=True)
