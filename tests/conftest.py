"""Shared pytest fixtures for the honeylager test suite."""

import queue
import threading

import pytest

from honeylager.config import SinkConfig
from honeylager.models import LogLevel, LogRecord
from honeylager.providers import MetricProvider
from honeylager.sink import HoneycombSink
from honeylager.transport import SendError, Transport, validate_event


class RecordingTransport(Transport):
    """In-memory transport that keeps every accepted event."""

    def __init__(self, fail_with: str | None = None):
        self.events = []
        self.close_calls = 0
        self._fail_with = fail_with
        self._lock = threading.Lock()
        self._responses: queue.Queue = queue.Queue()

    def send(self, event):
        if self._fail_with:
            raise SendError(self._fail_with)
        validate_event(event)
        with self._lock:
            self.events.append(event)

    def responses(self):
        return self._responses

    def close(self):
        self.close_calls += 1
        self._responses.put(None)


class FixedProvider(MetricProvider):
    def __init__(self, name, value):
        self.name = name
        self._value = value

    def value(self):
        return self._value


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def config() -> SinkConfig:
    return SinkConfig(write_key="test-key", dataset="test-dataset", min_level=LogLevel.DEBUG)


@pytest.fixture()
def providers() -> list:
    return [FixedProvider("num_threads", 4), FixedProvider("memory_allocation", 1024)]


@pytest.fixture()
def sink(config, transport, providers) -> HoneycombSink:
    s = HoneycombSink(config, transport=transport, providers=providers)
    yield s
    s.close()


@pytest.fixture()
def make_record():
    """Factory for LogRecord values with sensible defaults."""

    def _make(**overrides) -> LogRecord:
        values = {
            "source": "my-component",
            "message": "my-component.some-action",
            "level": LogLevel.INFO,
            "data": {"method": "get"},
            "timestamp": "1504804895.094333887",
        }
        values.update(overrides)
        return LogRecord(**values)

    return _make
