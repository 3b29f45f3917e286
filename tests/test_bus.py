"""Tests for EventBus and Subscription."""

import threading
import time

import pytest

from mixlink.protocols import ButtonEvent, SliderMoveEvent
from mixlink.serial import EventBus, OverflowPolicy


def slider(index: int, value: float = 0.5) -> SliderMoveEvent:
    return SliderMoveEvent(index, value)


@pytest.mark.unit
class TestEventBus:
    """Test fan-out to subscribers."""

    def test_every_subscriber_gets_every_event_in_order(self):
        bus = EventBus()
        first = bus.subscribe()
        second = bus.subscribe()
        events = [slider(0), ButtonEvent("1"), slider(2)]

        bus.publish_all(events)

        assert first.drain() == events
        assert second.drain() == events

    def test_subscriber_only_sees_events_after_subscribing(self):
        bus = EventBus()
        bus.publish(slider(0))

        sub = bus.subscribe()
        bus.publish(slider(1))

        assert sub.drain() == [slider(1)]

    def test_publish_without_subscribers(self):
        EventBus().publish(ButtonEvent("0"))

    def test_unsubscribe(self):
        bus = EventBus()
        sub = bus.subscribe()

        bus.unsubscribe(sub)
        bus.publish(slider(0))

        assert bus.subscriber_count == 0
        assert sub.closed
        assert sub.get_nowait() is None

    def test_close_removes_from_bus(self):
        bus = EventBus()
        sub = bus.subscribe()

        sub.close()
        sub.close()

        assert bus.subscriber_count == 0

    def test_context_manager_closes(self):
        bus = EventBus()
        with bus.subscribe() as sub:
            assert bus.subscriber_count == 1
        assert sub.closed
        assert bus.subscriber_count == 0


@pytest.mark.unit
class TestSubscription:
    """Test per-subscriber queues."""

    def test_get_timeout_returns_none(self):
        sub = EventBus().subscribe()
        assert sub.get(timeout=0.01) is None

    def test_get_nowait_empty(self):
        assert EventBus().subscribe().get_nowait() is None

    def test_drop_policy_requires_bounded_queue(self):
        with pytest.raises(ValueError):
            EventBus().subscribe(overflow=OverflowPolicy.DROP_OLDEST)

    def test_drop_oldest(self):
        bus = EventBus()
        sub = bus.subscribe(maxsize=2, overflow=OverflowPolicy.DROP_OLDEST)

        bus.publish_all([slider(0), slider(1), slider(2)])

        assert sub.drain() == [slider(1), slider(2)]
        assert sub.dropped == 1

    def test_drop_new(self):
        bus = EventBus()
        sub = bus.subscribe(maxsize=2, overflow=OverflowPolicy.DROP_NEW)

        bus.publish_all([slider(0), slider(1), slider(2)])

        assert sub.drain() == [slider(0), slider(1)]
        assert sub.dropped == 1

    def test_slow_dropping_subscriber_does_not_affect_others(self):
        bus = EventBus()
        lossy = bus.subscribe(maxsize=1, overflow=OverflowPolicy.DROP_NEW)
        full = bus.subscribe()

        bus.publish_all([slider(i) for i in range(5)])

        assert len(lossy.drain()) == 1
        assert len(full.drain()) == 5

    def test_iteration_ends_on_close(self):
        bus = EventBus()
        sub = bus.subscribe()
        received = []

        def consume():
            for event in sub:
                received.append(event)

        consumer = threading.Thread(target=consume)
        consumer.start()
        bus.publish(slider(0))
        bus.publish(ButtonEvent("0"))

        deadline = time.monotonic() + 2.0
        while len(received) < 2 and time.monotonic() < deadline:
            time.sleep(0.005)
        sub.close()
        consumer.join(timeout=2.0)

        assert not consumer.is_alive()
        assert received == [slider(0), ButtonEvent("0")]

    def test_close_wakes_blocked_get(self):
        sub = EventBus().subscribe()
        result = []

        waiter = threading.Thread(target=lambda: result.append(sub.get()))
        waiter.start()
        time.sleep(0.02)
        sub.close()
        waiter.join(timeout=2.0)

        assert not waiter.is_alive()
        assert result == [None]

    def test_block_policy_applies_backpressure(self):
        bus = EventBus()
        sub = bus.subscribe(maxsize=1)

        publisher = threading.Thread(target=bus.publish_all, args=([slider(0), slider(1)],))
        publisher.start()
        time.sleep(0.05)
        assert publisher.is_alive()

        assert sub.get(timeout=1.0) == slider(0)
        publisher.join(timeout=2.0)
        assert not publisher.is_alive()
        assert sub.get(timeout=1.0) == slider(1)

    def test_close_releases_blocked_publisher(self):
        bus = EventBus()
        sub = bus.subscribe(maxsize=1)

        publisher = threading.Thread(target=bus.publish_all, args=([slider(0), slider(1)],))
        publisher.start()
        time.sleep(0.05)
        sub.close()
        publisher.join(timeout=2.0)

        assert not publisher.is_alive()
