"""Maps device button presses to media key actions."""

import logging
import threading
from typing import Any, Protocol, runtime_checkable

from mixlink.exceptions import handle_errors
from mixlink.models.enums import MediaAction
from mixlink.protocols import ButtonEvent, ConfigEvent, DeviceEvent
from mixlink.serial.bus import EventBus, Subscription

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaKeyBackend(Protocol):
    """Something that can press the OS media keys."""

    def play_pause(self) -> None: ...

    def next_track(self) -> None: ...

    def prev_track(self) -> None: ...


class LoggingMediaKeys:
    """Backend that only logs the key it would press."""

    def play_pause(self) -> None:
        logger.info("Simulating Play/Pause key press")

    def next_track(self) -> None:
        logger.info("Simulating Next Track key press")

    def prev_track(self) -> None:
        logger.info("Simulating Previous Track key press")


class ButtonDispatcher:
    """
    Consumes device events and triggers the media action bound to each button.

    Runs its own thread on an EventBus subscription so a slow backend never
    stalls the serial read loop's other consumers. Slider events are ignored.
    """

    def __init__(
        self,
        bus: EventBus,
        button_actions: dict[str, MediaAction],
        backend: MediaKeyBackend | None = None,
    ):
        self._bus = bus
        self._button_actions = dict(button_actions)
        self._backend = backend or LoggingMediaKeys()
        self._subscription: Subscription | None = None
        self._thread: threading.Thread | None = None

    @property
    def button_actions(self) -> dict[str, MediaAction]:
        return dict(self._button_actions)

    def on_config_event(self, event: ConfigEvent, **kwargs: Any) -> None:
        """Pick up new button bindings (ConfigObserver protocol)."""
        if event in (ConfigEvent.CONFIG_LOADED, ConfigEvent.CONFIG_RESET):
            config = kwargs.get("config")
            if config is not None:
                self._button_actions = dict(config.button_actions)
                logger.debug(f"Button actions updated: {self._button_actions}")

    def handle_event(self, event: DeviceEvent) -> None:
        """Dispatch one device event."""
        if not isinstance(event, ButtonEvent):
            return

        action = self._button_actions.get(event.button_id)
        if action is None:
            logger.warning(f"Unknown button ID: {event.button_id}")
            return

        logger.debug(f"Button {event.button_id} -> {action.value}")
        self._trigger(action)

    @handle_errors(operation_name="send media key", re_raise=False)
    def _trigger(self, action: MediaAction) -> None:
        getattr(self._backend, action.value)()

    def start(self) -> None:
        """Subscribe to the bus and start dispatching."""
        if self._subscription is not None:
            logger.warning("ButtonDispatcher is already running")
            return

        self._subscription = self._bus.subscribe()
        self._thread = threading.Thread(
            target=self._dispatch_loop,
            args=(self._subscription,),
            name="mixlink-buttons",
            daemon=True,
        )
        self._thread.start()
        logger.debug("ButtonDispatcher started")

    def stop(self) -> None:
        """Release the subscription and wait for the dispatch thread."""
        if self._subscription is None:
            return
        self._subscription.close()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._subscription = None
        self._thread = None
        logger.debug("ButtonDispatcher stopped")

    def _dispatch_loop(self, subscription: Subscription) -> None:
        for event in subscription:
            self.handle_event(event)
