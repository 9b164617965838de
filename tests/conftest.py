"""
Pytest configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest

from metrics_plugin.daemon.base import DaemonClient
from metrics_plugin.errors import DaemonNotFoundError
from metrics_plugin.models.payload import Interval, Payload, ProtocolVersion


class FakeDaemon(DaemonClient):
    """In-memory daemon registry recording every call."""

    def __init__(
        self,
        readings: list[float] | None = None,
        path: Path = Path("/dev/shm/metrics/test"),
        missing: bool = False,
    ):
        self.readings = list(readings or [5.0])
        self.path = path
        self.missing = missing
        self.registrations: list[tuple[str, Interval, ProtocolVersion]] = []
        self.connects = 0
        self.closes = 0
        self.deregistered: list[str] = []

    async def connect(self) -> None:
        self.connects += 1

    async def close(self) -> None:
        self.closes += 1

    async def register(self, uid: str, interval: Interval, protocol: ProtocolVersion) -> float:
        self.registrations.append((uid, interval, protocol))
        if self.missing:
            raise DaemonNotFoundError("plugin.register: not found")
        index = min(len(self.registrations), len(self.readings)) - 1
        return self.readings[index]

    async def get_path(self, uid: str) -> Path:
        return self.path

    async def deregister(self, uid: str) -> None:
        self.deregistered.append(uid)


class RecordingWriter:
    """Writer double keeping payloads in memory."""

    def __init__(self, path: Path, protocol: ProtocolVersion):
        self.path = path
        self.protocol = protocol
        self.payloads: list[Payload] = []
        self.close_calls = 0

    def write(self, payload: Payload) -> None:
        self.payloads.append(payload)

    def close(self) -> None:
        self.close_calls += 1


class WriterFactory:
    """Opens RecordingWriters and remembers them."""

    def __init__(self):
        self.opened: list[RecordingWriter] = []

    def __call__(self, path: Path, protocol: ProtocolVersion) -> RecordingWriter:
        writer = RecordingWriter(path, protocol)
        self.opened.append(writer)
        return writer

    @property
    def payloads(self) -> list[Payload]:
        return [p for writer in self.opened for p in writer.payloads]


class SleepRecorder:
    """Records requested sleeps instead of sleeping."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def writers() -> WriterFactory:
    return WriterFactory()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def script(tmp_path: Path):
    """Write a Python script and return a command line running it."""

    def make(source: str, name: str = "script.py") -> str:
        path = tmp_path / name
        path.write_text(source)
        return f"{sys.executable} {path}"

    return make
