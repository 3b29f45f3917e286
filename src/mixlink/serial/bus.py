"""One-producer / many-consumer distribution of device events."""

import logging
import threading
from collections.abc import Iterable, Iterator
from enum import Enum
from queue import Empty, Full, Queue

from mixlink.protocols.events import DeviceEvent

logger = logging.getLogger(__name__)

# Poll period for blocked publishers so a close() can release them
_BLOCKING_PUT_POLL = 0.1


class OverflowPolicy(Enum):
    """What a publisher does when a subscriber's queue is full."""

    BLOCK = "block"              # Wait for the consumer (backpressure)
    DROP_OLDEST = "drop_oldest"  # Discard the oldest queued event
    DROP_NEW = "drop_new"        # Discard the event being published


class _Closed:
    """Sentinel that ends iteration over a closed subscription."""


_CLOSED = _Closed()


class Subscription:
    """
    A consumer's handle on the event stream.

    Events arrive in publish order. Use get() / get_nowait() to poll, or
    iterate to consume until the subscription is closed. Closing is
    idempotent and also happens when leaving a ``with`` block.
    """

    def __init__(self, bus: "EventBus", maxsize: int = 0, overflow: OverflowPolicy = OverflowPolicy.BLOCK):
        if overflow is not OverflowPolicy.BLOCK and maxsize <= 0:
            raise ValueError(f"{overflow.value} requires a bounded queue (maxsize > 0)")

        self._bus = bus
        self._queue: Queue = Queue(maxsize=maxsize)
        self._overflow = overflow
        self._closed = False
        self._put_lock = threading.Lock()
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def overflow(self) -> OverflowPolicy:
        return self._overflow

    def _offer(self, event: DeviceEvent) -> None:
        """Deliver one event according to the overflow policy (publisher side)."""
        if self._overflow is OverflowPolicy.BLOCK:
            while not self._closed:
                try:
                    self._queue.put(event, timeout=_BLOCKING_PUT_POLL)
                    return
                except Full:
                    continue
            return

        with self._put_lock:
            if self._closed:
                return
            try:
                self._queue.put_nowait(event)
                return
            except Full:
                pass

            self.dropped += 1
            if self._overflow is OverflowPolicy.DROP_NEW:
                return

            try:
                self._queue.get_nowait()
            except Empty:
                pass
            self._queue.put_nowait(event)

    def get(self, timeout: float | None = None) -> DeviceEvent | None:
        """
        Wait for the next event.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            The next event, or None on timeout or once the subscription is closed
        """
        return self._take(block=True, timeout=timeout)

    def get_nowait(self) -> DeviceEvent | None:
        """Return the next queued event, or None if there is none."""
        return self._take(block=False)

    def _take(self, block: bool, timeout: float | None = None) -> DeviceEvent | None:
        if self._closed:
            return None
        try:
            event = self._queue.get(block=block, timeout=timeout)
        except Empty:
            return None
        if event is _CLOSED:
            # Leave the sentinel for other waiters
            self._queue.put_nowait(_CLOSED)
            return None
        return None if self._closed else event

    def drain(self) -> list[DeviceEvent]:
        """Return every event queued right now without waiting."""
        events = []
        while (event := self.get_nowait()) is not None:
            events.append(event)
        return events

    def close(self) -> None:
        """Stop receiving events and wake any consumer blocked in get()."""
        if self._closed:
            return
        self._bus._remove(self)
        with self._put_lock:
            self._closed = True
            while True:
                try:
                    self._queue.get_nowait()
                except Empty:
                    break
            self._queue.put_nowait(_CLOSED)

    def __iter__(self) -> Iterator[DeviceEvent]:
        while (event := self.get()) is not None:
            yield event

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class EventBus:
    """
    Fans device events out to every subscriber.

    Each subscriber gets its own queue, so consumers run at their own pace.
    With the default BLOCK policy a slow consumer with a bounded queue
    stalls the publisher (the serial read loop); the DROP_* policies keep
    the publisher moving at the cost of losing events for that subscriber.
    """

    def __init__(self):
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, maxsize: int = 0, overflow: OverflowPolicy = OverflowPolicy.BLOCK) -> Subscription:
        """
        Create a new subscription.

        Args:
            maxsize: Queue capacity (0 = unbounded)
            overflow: Policy when the queue is full

        Returns:
            Subscription that receives every event published from now on
        """
        subscription = Subscription(self, maxsize=maxsize, overflow=overflow)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"New event subscription (maxsize={maxsize}, overflow={overflow.value})")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; it receives nothing further."""
        subscription.close()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
                logger.debug("Event subscription removed")

    def publish(self, event: DeviceEvent) -> None:
        """Deliver an event to every current subscriber, in subscription order."""
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription._offer(event)

    def publish_all(self, events: Iterable[DeviceEvent]) -> None:
        """Deliver several events, preserving their order."""
        for event in events:
            self.publish(event)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
