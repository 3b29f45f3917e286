"""Ordered observer lists for connection and config events.

Each ObserverManager delivers one kind of event through one callback name,
``on_connection_event`` or ``on_config_event``. Observers run in
registration order on the notifying thread with no lock held, so a callback
may register or unregister observers, itself included.
"""

import logging
from enum import Enum
from threading import Lock
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=object)


class ObserverManager(Generic[T]):
    """
    Thread-safe, ordered list of observers sharing one callback.

    Order is part of the contract: MixlinkApp registers ConnectionRenewer
    last on the ConfigService, so the serial link restarts only after the
    LED monitor and button dispatcher have applied a reloaded config.

    Example:
        ```python
        observers = ObserverManager[ConnectionObserver]("on_connection_event")
        observers.register(monitor)
        observers.notify(ConnectionEvent.CONNECTED, port="/dev/ttyUSB0")
        ```
    """

    def __init__(self, callback_name: str):
        self._callback_name = callback_name
        self._observers: list[T] = []
        self._lock = Lock()

    @property
    def callback_name(self) -> str:
        return self._callback_name

    def register(self, observer: T) -> None:
        """
        Append an observer. Registering the same observer again has no effect.

        Raises:
            TypeError: If the observer doesn't implement the callback
        """
        if not callable(getattr(observer, self._callback_name, None)):
            raise TypeError(f"{type(observer).__name__} has no {self._callback_name}() method")

        with self._lock:
            if observer in self._observers:
                return
            self._observers.append(observer)
            position = len(self._observers)

        logger.debug(f"Registered {type(observer).__name__} for {self._callback_name} (position {position})")

    def unregister(self, observer: T) -> None:
        """Remove an observer; unknown observers are logged and ignored."""
        with self._lock:
            if observer not in self._observers:
                logger.warning(f"{type(observer).__name__} was not registered for {self._callback_name}")
                return
            self._observers.remove(observer)

        logger.debug(f"Unregistered {type(observer).__name__} from {self._callback_name}")

    def notify(self, event: Enum, **details: Any) -> None:
        """
        Deliver an event to every observer registered when the call started.

        A failing observer is logged with the event it failed on and does not
        stop delivery to the others.
        """
        with self._lock:
            observers = list(self._observers)

        for observer in observers:
            try:
                getattr(observer, self._callback_name)(event, **details)
            except Exception as e:
                logger.error(f"{type(observer).__name__} failed handling {event.name}: {e}", exc_info=True)

    def __contains__(self, observer: T) -> bool:
        with self._lock:
            return observer in self._observers

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)
