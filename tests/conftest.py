"""Pytest fixtures for tests."""

import threading
import time
from collections import deque
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import serial

from mixlink.models import AppConfig, ConnectionConfig


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSerial:
    """
    Stand-in for serial.Serial.

    Replays scripted byte chunks in order, then behaves like a quiet port:
    each read waits for the read timeout (advancing a FakeClock if one is
    attached, sleeping otherwise) and returns b"". Writes are recorded per
    call in ``written`` and as one byte stream in ``stream``.
    """

    def __init__(
        self,
        port: str,
        chunks=(),
        read_error: Exception | None = None,
        write_error: Exception | None = None,
        fail_dtr: bool = False,
        slow_write: bool = False,
        clock: FakeClock | None = None,
        timeout: float | None = None,
        **settings,
    ):
        self.port = port
        self.settings = settings
        self.baudrate = settings.get("baudrate")
        self.timeout = timeout if timeout is not None else 0.01
        self.read_error = read_error
        self.write_error = write_error
        self.fail_dtr = fail_dtr
        self.slow_write = slow_write
        self.written: list[bytes] = []
        self.stream = bytearray()
        self.is_open = True
        self._dtr = False
        self._chunks = deque(chunks)
        self._clock = clock

    def feed(self, *chunks: bytes) -> None:
        """Queue more bytes for the reader (safe from another thread)."""
        self._chunks.extend(chunks)

    @property
    def in_waiting(self) -> int:
        if not self.is_open:
            raise serial.SerialException("Port is closed")
        return len(self._chunks[0]) if self._chunks else 0

    def read(self, size: int = 1) -> bytes:
        if not self.is_open:
            raise serial.SerialException("Port is closed")

        if self._chunks:
            chunk = self._chunks.popleft()
            if len(chunk) > size:
                self._chunks.appendleft(chunk[size:])
                chunk = chunk[:size]
            return chunk

        if self.read_error is not None:
            raise self.read_error

        if self._clock is not None:
            self._clock.advance(self.timeout)
        else:
            time.sleep(self.timeout)
        return b""

    def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        if self.slow_write:
            # One byte at a time, yielding to other writers in between
            for byte in data:
                self.stream.append(byte)
                time.sleep(0)
        else:
            self.stream.extend(data)
        self.written.append(data)
        return len(data)

    @property
    def dtr(self) -> bool:
        return self._dtr

    @dtr.setter
    def dtr(self, value: bool) -> None:
        if self.fail_dtr:
            raise serial.SerialException("DTR not supported")
        self._dtr = value

    def close(self) -> None:
        self.is_open = False

    @property
    def written_lines(self) -> list[str]:
        return [data.decode("ascii") for data in self.written]


class FakeSerialFactory:
    """
    Callable used in place of serial.Serial.

    Configure per-port behaviour with script() / fail_open(); every port it
    opens is kept in ``opened`` for inspection.
    """

    def __init__(self, clock: FakeClock | None = None):
        self.clock = clock
        self.scripts: dict[str, dict] = {}
        self.open_errors: dict[str, Exception] = {}
        self.opened: list[FakeSerial] = []
        self.calls: list[tuple[str, dict]] = []

    def script(self, port: str, *chunks: bytes, **behaviour) -> None:
        self.scripts[port] = {"chunks": chunks, **behaviour}

    def fail_open(self, port: str, error: Exception) -> None:
        self.open_errors[port] = error

    def __call__(self, port: str, **kwargs) -> FakeSerial:
        self.calls.append((port, kwargs))
        if port in self.open_errors:
            raise self.open_errors[port]
        conn = FakeSerial(port, clock=self.clock, **self.scripts.get(port, {}), **kwargs)
        self.opened.append(conn)
        return conn

    @property
    def last(self) -> FakeSerial:
        return self.opened[-1]


class FakePortInfo:
    """Mimics serial.tools.list_ports_common.ListPortInfo."""

    def __init__(self, device: str, description: str = "n/a"):
        self.device = device
        self.description = description


class RecordingObserver:
    """Records connection and config events."""

    def __init__(self):
        self.connection_events = []
        self.config_events = []
        self._lock = threading.Lock()

    def on_connection_event(self, event, port=None, error=None):
        with self._lock:
            self.connection_events.append((event, port, error))

    def on_config_event(self, event, **kwargs):
        with self._lock:
            self.config_events.append((event, kwargs))


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def serial_factory():
    """Fake serial factory with real-time reads (for threaded tests)."""
    return FakeSerialFactory()


@pytest.fixture
def clocked_serial_factory(fake_clock):
    """Fake serial factory whose quiet reads advance the fake clock."""
    return FakeSerialFactory(clock=fake_clock)


@pytest.fixture
def recorder():
    return RecordingObserver()


@pytest.fixture
def fixed_port_config():
    return ConnectionConfig(port="/dev/ttyFAKE0", baud_rate=9600)


@pytest.fixture
def app_config():
    """Config with a small slider mapping."""
    return AppConfig(
        connection=ConnectionConfig(port="/dev/ttyFAKE0", baud_rate=9600),
        slider_mapping={0: ["master"], 1: ["chrome.exe"], 2: ["spotify.exe", "discord.exe"]},
        config_watch_interval=0,
    )


@pytest.fixture
def wait_for():
    """Poll a predicate until it holds or a timeout expires."""

    def _wait_for(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait_for


@pytest.fixture
def port_lister():
    """Build a comports() stand-in that lists the given device names."""

    def _port_lister(*devices: str):
        return lambda: [FakePortInfo(device, description=f"Fake {device}") for device in devices]

    return _port_lister
