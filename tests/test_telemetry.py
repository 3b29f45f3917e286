"""Tests for TelemetryTracker and slider normalisation."""

import pytest

from mixlink.protocols import SliderMoveEvent
from mixlink.serial import UNSET, TelemetryFrame, TelemetryTracker
from mixlink.serial.telemetry import normalize


@pytest.mark.unit
class TestNormalize:
    """Test raw-to-volume conversion."""

    def test_bounds(self):
        assert normalize(0) == 0.0
        assert normalize(1023) == 1.0

    def test_rounds_to_two_decimals(self):
        assert normalize(512) == 0.5

    def test_invert(self):
        assert normalize(0, invert=True) == 1.0
        assert normalize(1023, invert=True) == 0.0
        assert normalize(256, invert=True) == 0.75


@pytest.mark.unit
class TestTelemetryTracker:
    """Test change detection over telemetry frames."""

    def test_first_frame_reports_every_slider(self):
        tracker = TelemetryTracker(noise_threshold=0.01)

        events = tracker.process(TelemetryFrame((512, 1023, 0)))

        assert events == [
            SliderMoveEvent(0, 0.5),
            SliderMoveEvent(1, 1.0),
            SliderMoveEvent(2, 0.0),
        ]
        assert tracker.slider_count == 3

    def test_identical_frame_reports_nothing(self):
        tracker = TelemetryTracker(noise_threshold=0.01)
        tracker.process(TelemetryFrame((512, 1023, 0)))

        assert tracker.process(TelemetryFrame((512, 1023, 0))) == []

    def test_small_moves_are_filtered(self):
        tracker = TelemetryTracker(noise_threshold=0.012)
        tracker.process(TelemetryFrame((512,)))

        # 522 -> 0.51, within the threshold of 0.50
        assert tracker.process(TelemetryFrame((522,))) == []
        assert tracker.values() == [0.5]

    def test_large_move_is_reported(self):
        tracker = TelemetryTracker(noise_threshold=0.012)
        tracker.process(TelemetryFrame((512,)))

        # 532 -> 0.52
        assert tracker.process(TelemetryFrame((532,))) == [SliderMoveEvent(0, 0.52)]

    def test_filtered_moves_accumulate_against_last_reported(self):
        """Slow drift is reported once it exceeds the threshold in total."""
        tracker = TelemetryTracker(noise_threshold=0.012)
        tracker.process(TelemetryFrame((512,)))

        assert tracker.process(TelemetryFrame((522,))) == []
        assert tracker.process(TelemetryFrame((532,))) == [SliderMoveEvent(0, 0.52)]

    def test_event_iff_change_exceeds_threshold(self):
        threshold = 0.05
        tracker = TelemetryTracker(noise_threshold=threshold)
        last = None
        for raw in [0, 10, 40, 60, 100, 90, 200, 1023, 1000, 980, 900]:
            value = round(raw / 1023, 2)
            events = tracker.process(TelemetryFrame((raw,)))
            expected = last is None or abs(value - last) > threshold
            assert bool(events) == expected, raw
            if events:
                last = value

    def test_only_moved_sliders_are_reported_in_index_order(self):
        tracker = TelemetryTracker(noise_threshold=0.01)
        tracker.process(TelemetryFrame((0, 0, 0, 0)))

        events = tracker.process(TelemetryFrame((1023, 0, 1023, 0)))

        assert [e.index for e in events] == [0, 2]

    def test_slider_count_change_resets_state(self):
        tracker = TelemetryTracker(noise_threshold=0.01)
        tracker.process(TelemetryFrame((512, 512)))

        events = tracker.process(TelemetryFrame((512, 512, 512)))

        assert [e.index for e in events] == [0, 1, 2]
        assert tracker.slider_count == 3

    def test_shrinking_slider_count_resets_state(self):
        tracker = TelemetryTracker(noise_threshold=0.01)
        tracker.process(TelemetryFrame((512, 512, 512)))

        events = tracker.process(TelemetryFrame((512,)))

        assert events == [SliderMoveEvent(0, 0.5)]
        assert tracker.values() == [0.5]

    def test_invert(self):
        tracker = TelemetryTracker(invert=True, noise_threshold=0.01)

        events = tracker.process(TelemetryFrame((0, 1023)))

        assert events == [SliderMoveEvent(0, 1.0), SliderMoveEvent(1, 0.0)]

    def test_reset_forces_next_frame_to_report(self):
        tracker = TelemetryTracker(noise_threshold=0.01)
        tracker.process(TelemetryFrame((512, 512)))

        tracker.reset()

        assert tracker.slider_count == 0
        assert tracker.values() == []
        assert len(tracker.process(TelemetryFrame((512, 512)))) == 2

    def test_values_before_first_frame(self):
        assert TelemetryTracker().values() == []

    def test_unset_sentinel_is_out_of_range(self):
        assert UNSET < 0.0

    def test_configure_updates_settings(self):
        tracker = TelemetryTracker()

        tracker.configure(invert=True, noise_threshold=0.2)

        assert tracker.invert is True
        assert tracker.noise_threshold == 0.2

    def test_configure_keeps_unspecified_settings(self):
        tracker = TelemetryTracker(invert=True, noise_threshold=0.03)

        tracker.configure(noise_threshold=0.1)

        assert tracker.invert is True
        assert tracker.noise_threshold == 0.1

    def test_configure_applies_to_following_frames(self):
        tracker = TelemetryTracker(noise_threshold=0.01)
        tracker.process(TelemetryFrame((512,)))

        tracker.configure(noise_threshold=0.5)

        assert tracker.process(TelemetryFrame((900,))) == []
