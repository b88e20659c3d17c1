"""Shared fixtures: in-memory transports and a controllable clock."""

from __future__ import annotations

import queue
import threading
import time

import pytest

from huanyang_vfd_mcp.exceptions import TransportIoError
from huanyang_vfd_mcp.protocol.framing import sign


class FakeTransport:
    """Stands in for a serial port.

    Bytes pushed with ``feed`` come back from ``read`` one chunk per call.
    Written frames are recorded with the time they were written.
    """

    def __init__(self):
        self._incoming: queue.Queue[bytes] = queue.Queue()
        self._lock = threading.Lock()
        self.writes: list[tuple[float, bytes]] = []
        self.closed = False
        self.io_after_close = False
        self.read_error: Exception | None = None
        self.write_error: Exception | None = None

    @property
    def written(self) -> list[bytes]:
        with self._lock:
            return [frame for _, frame in self.writes]

    def open(self) -> None:
        self.closed = False

    def feed(self, data: bytes) -> None:
        self._incoming.put(bytes(data))

    def read(self, size: int = 16) -> bytes:
        if self.closed:
            self.io_after_close = True
            raise TransportIoError("closed")
        if self.read_error is not None:
            raise self.read_error
        try:
            return self._incoming.get(timeout=0.01)
        except queue.Empty:
            return b""

    def write(self, data: bytes) -> int:
        if self.closed:
            self.io_after_close = True
            raise TransportIoError("closed")
        if self.write_error is not None:
            raise self.write_error
        with self._lock:
            self.writes.append((time.monotonic(), bytes(data)))
        return len(data)

    def close(self) -> None:
        self.closed = True


class DriveSimulator(FakeTransport):
    """Fake transport that answers frequency queries like a drive.

    The output frequency follows the last frequency written once the
    spindle has been started, and drops to zero on stop.
    """

    QUERY = sign(bytes([0x01, 0x04, 0x03, 0x01, 0x00, 0x00]))

    def __init__(self):
        super().__init__()
        self.set_frequency = 0
        self.running = False

    @property
    def output_frequency(self) -> int:
        return self.set_frequency if self.running else 0

    def write(self, data: bytes) -> int:
        written = super().write(data)
        function = data[1]
        if data == self.QUERY:
            freq = self.output_frequency
            self.feed(sign(bytes([0x01, 0x04, 0x03, 0x01, freq >> 8, freq & 0xFF])))
        elif function == 0x05:
            self.set_frequency = int.from_bytes(data[3:5], "big")
        elif function == 0x03:
            self.running = data[3] in (0x01, 0x11)
        return written


class BlockingTransport(FakeTransport):
    """Write blocks until released, like a serial write waiting on its timeout."""

    def __init__(self):
        super().__init__()
        self.in_write = threading.Event()
        self.release = threading.Event()

    def write(self, data: bytes) -> int:
        self.in_write.set()
        self.release.wait(5)
        return super().write(data)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def wait_for(predicate, timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def simulator():
    return DriveSimulator()


@pytest.fixture
def blocking_transport():
    transport = BlockingTransport()
    yield transport
    transport.release.set()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def eventually():
    return wait_for
