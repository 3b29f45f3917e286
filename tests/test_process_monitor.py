"""Tests for the process/audio LED monitor."""

from unittest.mock import Mock, call

import pytest

from mixlink.exceptions import NotConnectedError
from mixlink.models import AppConfig, LEDMode
from mixlink.monitor import ProcessMonitor
from mixlink.protocols import ConfigEvent, ConnectionEvent


def activity(*names):
    source = Mock()
    source.get_running_processes.return_value = set(names)
    return source


def audio(levels):
    source = Mock()
    source.get_peak_levels.return_value = levels
    return source


@pytest.fixture
def sink():
    return Mock()


@pytest.mark.unit
class TestProcessMode:
    """Test LEDs driven by running processes."""

    def test_first_check_sends_every_led(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity("chrome.exe"))

        monitor.check_once()

        assert sink.send_led_state.call_args_list == [call(0, True), call(1, True), call(2, False)]
        assert monitor.led_states == {0: True, 1: True, 2: False}

    def test_only_changes_are_sent(self, sink, app_config):
        source = activity("chrome.exe")
        monitor = ProcessMonitor(sink, app_config, activity_source=source)
        monitor.check_once()
        sink.reset_mock()

        monitor.check_once()
        assert sink.send_led_state.call_count == 0

        source.get_running_processes.return_value = {"chrome.exe", "discord.exe"}
        monitor.check_once()
        assert sink.send_led_state.call_args_list == [call(2, True)]

    def test_slider_is_on_if_any_target_runs(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity("discord.exe"))

        monitor.check_once()

        assert monitor.led_states[2] is True

    def test_master_is_always_on(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity())

        monitor.check_once()

        assert monitor.led_states[0] is True

    def test_mapping_is_case_insensitive(self, sink):
        config = AppConfig(slider_mapping={0: ["Chrome.EXE"]})
        monitor = ProcessMonitor(sink, config, activity_source=activity("chrome.exe"))

        monitor.check_once()

        assert monitor.led_states == {0: True}

    def test_never_active_targets_are_skipped(self, sink):
        config = AppConfig(slider_mapping={0: ["mixlink.unmapped", "obs64.exe"], 1: ["mixlink.current"]})
        monitor = ProcessMonitor(sink, config, activity_source=activity("obs64.exe", "mixlink.current"))

        monitor.check_once()

        assert monitor.led_states == {0: True, 1: False}

    def test_process_mode_sends_no_peaks(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity())

        monitor.check_once()

        sink.send_audio_peaks.assert_not_called()

    def test_write_failure_does_not_raise(self, sink, app_config):
        sink.send_led_state.side_effect = NotConnectedError("send LED state")
        monitor = ProcessMonitor(sink, app_config, activity_source=activity())

        monitor.check_once()

        assert sink.send_led_state.call_count == 3
        assert monitor.led_states == {}

    def test_failed_write_is_retried(self, sink, app_config):
        sink.send_led_state.side_effect = NotConnectedError("send LED state")
        monitor = ProcessMonitor(sink, app_config, activity_source=activity())
        monitor.check_once()

        sink.send_led_state.side_effect = None
        sink.reset_mock()
        monitor.check_once()

        assert sink.send_led_state.call_count == 3

    def test_query_failure_skips_check(self, sink, app_config):
        source = Mock()
        source.get_running_processes.side_effect = RuntimeError("access denied")
        monitor = ProcessMonitor(sink, app_config, activity_source=source)

        monitor.check_once()

        sink.send_led_state.assert_not_called()

    def test_reconnect_resends_every_led(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity())
        monitor.check_once()
        sink.reset_mock()

        monitor.on_connection_event(ConnectionEvent.CONNECTED, port="/dev/ttyFAKE0")
        monitor.check_once()

        assert sink.send_led_state.call_count == 3

    def test_refresh_all_leds(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity("spotify.exe"))
        monitor.check_once()

        monitor.refresh_all_leds()

        sink.send_all_led_states.assert_called_once_with({0: True, 1: False, 2: True}, 3)

    def test_refresh_with_empty_mapping_sends_nothing(self, sink):
        monitor = ProcessMonitor(sink, AppConfig(), activity_source=activity())

        monitor.refresh_all_leds()

        sink.send_all_led_states.assert_not_called()

    def test_config_reload_replaces_mapping(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity("chrome.exe"))
        monitor.check_once()
        sink.reset_mock()

        monitor.on_config_event(ConfigEvent.CONFIG_LOADED, config=AppConfig(slider_mapping={0: ["chrome.exe"]}))
        monitor.check_once()

        assert sink.send_led_state.call_args_list == [call(0, True)]
        assert monitor.num_sliders == 1


@pytest.mark.unit
class TestAudioMode:
    """Test LEDs and display driven by audio peaks."""

    @pytest.fixture
    def audio_config(self, app_config):
        return app_config.model_copy(update={"led_mode": LEDMode.AUDIO})

    def test_leds_follow_sound(self, sink, audio_config):
        source = audio({"Spotify.exe": 0.42, "chrome.exe": 0.0})
        monitor = ProcessMonitor(sink, audio_config, activity_source=activity(), audio_source=source)

        monitor.check_once()

        assert monitor.led_states == {0: False, 1: False, 2: True}

    def test_peaks_and_labels_are_sent(self, sink, audio_config):
        source = audio({"spotify.exe": 0.42, "discord.exe": 0.8, "chrome.exe": 0.0})
        monitor = ProcessMonitor(sink, audio_config, activity_source=activity(), audio_source=source)

        monitor.check_once()

        sink.send_audio_peaks.assert_called_once_with(
            {0: 0, 1: 0, 2: 80}, {0: "", 1: "", 2: "discord"}, 3
        )
        assert monitor.peaks == {0: 0, 1: 0, 2: 80}

    def test_uses_audio_check_interval(self, sink, audio_config):
        monitor = ProcessMonitor(sink, audio_config, audio_source=audio({}))

        assert monitor.audio_mode is True
        assert monitor.check_interval == audio_config.audio_check_interval

    def test_falls_back_to_process_mode_without_source(self, sink, audio_config):
        monitor = ProcessMonitor(sink, audio_config, activity_source=activity())

        assert monitor.audio_mode is False
        assert monitor.check_interval == audio_config.process_check_interval

        monitor.check_once()
        sink.send_audio_peaks.assert_not_called()


@pytest.mark.integration
class TestMonitorThread:
    """Test the background loop."""

    def test_loop_checks_and_refreshes(self, sink, app_config, wait_for):
        config = app_config.model_copy(update={"process_check_interval": 0.01, "led_refresh_interval": 0.02})
        monitor = ProcessMonitor(sink, config, activity_source=activity())

        monitor.start()
        try:
            assert monitor.is_running
            assert wait_for(lambda: sink.send_led_state.call_count >= 3)
            assert wait_for(lambda: sink.send_all_led_states.called)
        finally:
            monitor.stop()

        assert not monitor.is_running

    def test_stop_without_start(self, sink, app_config):
        monitor = ProcessMonitor(sink, app_config, activity_source=activity())
        monitor.stop()
        assert not monitor.is_running
