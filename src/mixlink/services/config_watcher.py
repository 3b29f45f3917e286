"""Hot reload of the config file."""

import logging
import threading
from pathlib import Path

from mixlink.exceptions import MixlinkError
from mixlink.services.config_service import ConfigService

logger = logging.getLogger(__name__)


class ConfigFileWatcher:
    """
    Polls the config file's modification time and reloads it on change.

    A file that fails to load (bad JSON, invalid values) is logged and the
    previous configuration stays in effect until the file is fixed.
    """

    def __init__(self, config_service: ConfigService, path: Path, poll_interval: float = 2.0):
        self._config_service = config_service
        self._path = Path(path)
        self._poll_interval = poll_interval
        self._last_mtime = self._read_mtime()
        self._running = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def _read_mtime(self) -> float | None:
        try:
            return self._path.stat().st_mtime
        except OSError:
            return None

    def check_once(self) -> bool:
        """
        Reload the config if the file changed since the last check.

        Returns:
            True if a reload was performed successfully
        """
        mtime = self._read_mtime()
        if mtime is None or mtime == self._last_mtime:
            return False

        self._last_mtime = mtime
        logger.info(f"Config file changed: {self._path}")

        try:
            self._config_service.reload(self._path)
        except MixlinkError as e:
            logger.error(f"Keeping previous config, reload failed: {e.get_full_message()}")
            return False
        except OSError as e:
            logger.error(f"Keeping previous config, could not read {self._path}: {e}")
            return False

        return True

    def start(self) -> None:
        """Start watching in a background thread."""
        if self._running:
            logger.warning("ConfigFileWatcher is already running")
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._watch, name="mixlink-config-watcher", daemon=True)
        self._thread.start()
        logger.debug(f"Watching {self._path} every {self._poll_interval}s")

    def stop(self) -> None:
        """Stop watching."""
        self._running = False
        self._stop_event.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None
        logger.debug("ConfigFileWatcher stopped")

    def _watch(self) -> None:
        while not self._stop_event.wait(self._poll_interval):
            try:
                self.check_once()
            except Exception as e:
                logger.error(f"Error checking config file: {e}", exc_info=True)
