"""Tests for the standard logging bridge."""

import logging

import pytest

from honeylager.config import SinkConfig
from honeylager.handler import HoneycombHandler, to_log_level
from honeylager.models import LogLevel
from honeylager.sink import HoneycombSink
from honeylager.transport import TRANSPORT_THREAD_NAME


@pytest.fixture
def component(sink):
    """A fresh logger wired to the sink through a HoneycombHandler."""
    logger = logging.getLogger("test-component")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = HoneycombHandler(sink)
    logger.addHandler(handler)
    yield logger
    logger.removeHandler(handler)
    logger.propagate = True


@pytest.mark.parametrize(
    "levelno, expected",
    [
        (logging.DEBUG, LogLevel.DEBUG),
        (logging.INFO, LogLevel.INFO),
        (logging.WARNING, LogLevel.INFO),
        (logging.ERROR, LogLevel.ERROR),
        (logging.CRITICAL, LogLevel.FATAL),
        (5, LogLevel.DEBUG),
    ],
)
def test_to_log_level(levelno, expected):
    assert to_log_level(levelno) == expected


def test_record_becomes_event(component, transport):
    component.info("request-%s", "done", extra={"data": {"status": 200}, "session": "4.2"})

    (event,) = transport.events
    assert event.fields["lager_source"] == "test-component"
    assert event.fields["lager_message"] == "request-done"
    assert event.fields["lager_log_level"] == "INFO"
    assert event.fields["lager_session"] == "4.2"
    assert event.fields["status"] == 200
    assert event.fields["function"] == "test_handler.test_record_becomes_event"
    assert "lager_timestamp_parse_error" not in event.fields


def test_timestamp_comes_from_record(component, transport):
    component.warning("late")
    (event,) = transport.events
    assert event.fields["lager_log_level"] == "INFO"
    assert event.created_at.tzinfo is not None


def test_exception_lands_in_error_field(component, transport):
    try:
        raise RuntimeError("This is an example error")
    except RuntimeError:
        component.exception("example-error")

    (event,) = transport.events
    assert event.fields["lager_log_level"] == "ERROR"
    assert "RuntimeError: This is an example error" in event.fields["error"]


def test_handler_does_not_mutate_extra_data(component):
    data = {"k": "v"}
    component.info("x", extra={"data": data, "session": "1"})
    assert data == {"k": "v"}


def test_internal_records_are_skipped(sink, transport):
    handler = HoneycombHandler(sink)
    record = logging.LogRecord("honeylager.reconciler", logging.ERROR, __file__, 1, "oops", None, None)
    handler.emit(record)
    assert transport.events == []


def test_below_min_level_is_filtered(transport, providers):
    sink = HoneycombSink(
        SinkConfig(write_key="k", dataset="d", min_level=LogLevel.ERROR),
        transport=transport,
        providers=providers,
    )
    logger = logging.getLogger("filtered-component")
    logger.setLevel(logging.DEBUG)
    handler = HoneycombHandler(sink)
    logger.addHandler(handler)
    try:
        logger.info("ignored")
        logger.error("kept")
    finally:
        logger.removeHandler(handler)

    assert [e.fields["lager_message"] for e in transport.events] == ["kept"]


def test_close_sink_option(sink, transport):
    HoneycombHandler(sink, close_sink=True).close()
    assert sink.closed
    assert transport.close_calls == 1


def test_close_leaves_sink_open_by_default(sink):
    HoneycombHandler(sink).close()
    assert not sink.closed


@pytest.mark.parametrize("name", ["urllib3.connectionpool", "requests", "honeylager"])
def test_http_client_records_are_skipped(sink, transport, name):
    handler = HoneycombHandler(sink)
    handler.emit(logging.LogRecord(name, logging.DEBUG, __file__, 1, "Starting new HTTPS connection", None, None))
    assert transport.events == []


def test_records_from_transport_thread_are_skipped(sink, transport):
    handler = HoneycombHandler(sink)
    record = logging.LogRecord("app", logging.ERROR, __file__, 1, "from delivery", None, None)
    record.threadName = TRANSPORT_THREAD_NAME
    handler.emit(record)
    assert transport.events == []
