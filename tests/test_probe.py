"""Tests for serial port auto-detection."""

from unittest.mock import patch

import pytest
import serial

from mixlink.serial import LineFramer, PortProbe
from mixlink.serial.framer import MAX_LINE_LENGTH

GARBAGE = b"\x00\xffnoise without structure\r\n"


def make_probe(factory, clock, lister=lambda: []):
    return PortProbe(serial_factory=factory, port_lister=lister, clock=clock)


@pytest.mark.unit
class TestProbePort:
    """Test probing a single port."""

    def test_accepts_two_valid_lines(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.script("/dev/ttyA", b"512|1023|0\r\n", b"511|1023|0\r\n")
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is True

    def test_accepts_lines_split_across_reads(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.script("/dev/ttyA", b"51", b"2|10", b"23\r", b"\n7|7\r\n")
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is True

    def test_rejects_single_valid_line(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.script("/dev/ttyA", b"512|1023|0\r\n")
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is False

    def test_rejects_garbage_until_deadline(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.script("/dev/ttyA", *[GARBAGE] * 50)
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is False
        assert fake_clock() >= 2.0

    def test_unterminated_noise_before_telemetry(self, clocked_serial_factory, fake_clock):
        noise = [b"\x00" * 1024] * 8
        clocked_serial_factory.script("/dev/ttyA", *noise, b"\r\n512|1023|0\r\n511|1023|0\r\n")
        probe = make_probe(clocked_serial_factory, fake_clock)

        with patch("mixlink.serial.probe.LineFramer", wraps=LineFramer) as framer_cls:
            assert probe.probe_port("/dev/ttyA", 9600) is True

        framer_cls.assert_called_once_with(max_pending=MAX_LINE_LENGTH)

    def test_rejects_lf_only_lines(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.script("/dev/ttyA", b"1|2\n", b"3|4\n", b"5|6\n")
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is False

    def test_rejects_silent_port(self, clocked_serial_factory, fake_clock):
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is False

    def test_rejects_port_that_fails_to_open(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.fail_open("/dev/ttyA", serial.SerialException("busy"))
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is False
        assert clocked_serial_factory.opened == []

    def test_rejects_port_with_read_error(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.script(
            "/dev/ttyA", b"1|2\r\n", read_error=serial.SerialException("device reports readiness but returned no data")
        )
        probe = make_probe(clocked_serial_factory, fake_clock)

        assert probe.probe_port("/dev/ttyA", 9600) is False

    def test_port_is_closed_after_probing(self, clocked_serial_factory, fake_clock):
        clocked_serial_factory.script("/dev/ttyA", b"1|2\r\n", b"3|4\r\n")
        probe = make_probe(clocked_serial_factory, fake_clock)

        probe.probe_port("/dev/ttyA", 9600)

        assert clocked_serial_factory.last.is_open is False

    def test_opens_with_8n1_and_short_timeout(self, clocked_serial_factory, fake_clock):
        probe = make_probe(clocked_serial_factory, fake_clock)

        probe.probe_port("/dev/ttyA", 115200)

        port, settings = clocked_serial_factory.calls[0]
        assert port == "/dev/ttyA"
        assert settings["baudrate"] == 115200
        assert settings["bytesize"] == serial.EIGHTBITS
        assert settings["parity"] == serial.PARITY_NONE
        assert settings["stopbits"] == serial.STOPBITS_ONE
        assert settings["timeout"] == 0.1


@pytest.mark.unit
class TestFindPort:
    """Test scanning every candidate port."""

    def test_candidate_ports(self, clocked_serial_factory, fake_clock, port_lister):
        probe = make_probe(clocked_serial_factory, fake_clock, port_lister("COM3", "COM4"))
        assert probe.candidate_ports() == ["COM3", "COM4"]

    def test_candidate_ports_accepts_plain_strings(self, clocked_serial_factory, fake_clock):
        probe = PortProbe(serial_factory=clocked_serial_factory, port_lister=lambda: ["COM1"], clock=fake_clock)
        assert probe.candidate_ports() == ["COM1"]

    def test_enumeration_error_yields_no_candidates(self, clocked_serial_factory, fake_clock):
        def broken_lister():
            raise OSError("no sysfs")

        probe = PortProbe(serial_factory=clocked_serial_factory, port_lister=broken_lister, clock=fake_clock)

        assert probe.candidate_ports() == []
        assert probe.find_port(9600) is None

    def test_returns_first_answering_port(self, clocked_serial_factory, fake_clock, port_lister):
        clocked_serial_factory.script("/dev/ttyS0", GARBAGE)
        clocked_serial_factory.fail_open("/dev/ttyS1", serial.SerialException("permission denied"))
        clocked_serial_factory.script("/dev/ttyACM0", b"1|2\r\n", b"1|2\r\n")
        clocked_serial_factory.script("/dev/ttyACM1", b"3|4\r\n", b"3|4\r\n")
        probe = make_probe(
            clocked_serial_factory, fake_clock, port_lister("/dev/ttyS0", "/dev/ttyS1", "/dev/ttyACM0", "/dev/ttyACM1")
        )

        assert probe.find_port(9600) == "/dev/ttyACM0"
        probed = [port for port, _ in clocked_serial_factory.calls]
        assert probed == ["/dev/ttyS0", "/dev/ttyS1", "/dev/ttyACM0"]

    def test_no_answering_port(self, clocked_serial_factory, fake_clock, port_lister):
        probe = make_probe(clocked_serial_factory, fake_clock, port_lister("/dev/ttyS0"))
        assert probe.find_port(9600) is None

    def test_no_ports(self, clocked_serial_factory, fake_clock):
        probe = make_probe(clocked_serial_factory, fake_clock)
        assert probe.find_port(9600) is None
