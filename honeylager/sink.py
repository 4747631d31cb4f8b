"""Honeycomb sink - translates log records into events and submits them."""

import datetime
import inspect
import logging
import math
import random
import threading

from honeylager.builder import EventBuilder
from honeylager.config import SinkConfig
from honeylager.models import LogLevel, LogRecord, level_to_string, parse_level
from honeylager.providers import MetricProvider, default_providers
from honeylager.transport import HTTPTransport, SendError, Transport

logger = logging.getLogger(__name__)

METADATA_KEY_ID = "id"
MAX_TOKEN = 2 ** 31

# 0 is the sink's log method, 1 is the facade's logging method,
# 2 is the function that called the facade
FUNCTION_OFFSET = 2

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_token_source = random.SystemRandom()


def new_token() -> int:
    """Return a correlation token in [0, 2**31). Uniqueness is likely, not guaranteed."""
    return _token_source.randrange(MAX_TOKEN)


def split_epoch_seconds(value: float) -> tuple[int, int]:
    """Split fractional epoch seconds into (seconds, nanoseconds), truncating toward zero."""
    seconds = int(value)
    nanos = int((value - seconds) * 1e9)
    return seconds, nanos


def parse_lager_timestamp(ts: str) -> datetime.datetime:
    """Parse decimal epoch seconds, e.g. "1504804895.094333887", into a UTC datetime.

    Nanoseconds beyond microsecond precision are truncated. Raises ValueError
    for anything that is not a finite number representable as a datetime.
    """
    try:
        value = float(ts)
    except (TypeError, ValueError):
        raise ValueError(f"invalid timestamp {ts!r}: not a decimal number") from None
    if not math.isfinite(value):
        raise ValueError(f"invalid timestamp {ts!r}: not a finite number")

    seconds, nanos = split_epoch_seconds(value)
    try:
        return _EPOCH + datetime.timedelta(seconds=seconds, microseconds=int(nanos / 1000))
    except OverflowError:
        raise ValueError(f"invalid timestamp {ts!r}: out of range") from None


def caller_name(offset: int) -> str | None:
    """Best-effort "module.function" name of the frame *offset* levels above the caller."""
    frame = inspect.currentframe()
    try:
        for _ in range(offset + 1):
            if frame is None:
                return None
            frame = frame.f_back
        if frame is None:
            return None
        module = frame.f_globals.get("__name__", "")
        return f"{module}.{frame.f_code.co_name}" if module else frame.f_code.co_name
    finally:
        del frame


class HoneycombSink:
    """Receives log records and forwards them as Honeycomb events.

    Callers are expected to call close() when they are done, or use the sink
    as a context manager. Delivery outcomes arrive on responses() and are
    usually consumed by a ResponseReader running on its own thread.
    """

    def __init__(
        self,
        config: SinkConfig,
        transport: Transport | None = None,
        providers: list[MetricProvider] | None = None,
    ):
        self._config = config
        self._transport = transport if transport is not None else HTTPTransport(
            api_host=config.api_host,
            timeout=config.send_timeout,
            max_pending=config.max_pending,
        )
        self._builder = EventBuilder(
            config.write_key,
            config.dataset,
            providers if providers is not None else default_providers(),
        )
        self._closed = threading.Event()
        self._close_lock = threading.Lock()

    @property
    def config(self) -> SinkConfig:
        return self._config

    @property
    def builder(self) -> EventBuilder:
        return self._builder

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def responses(self):
        """The transport's stream of DeliveryOutcome values."""
        return self._transport.responses()

    def log(self, record: LogRecord) -> None:
        if record.level < self._config.min_level:
            return
        if self._closed.is_set():
            logger.debug("Sink is closed, dropping record %r", record.message)
            return

        event = self._builder.new_event(self._transport)
        event.metadata = {METADATA_KEY_ID: new_token()}

        function = record.caller or caller_name(FUNCTION_OFFSET)
        if function:
            event.add_field("function", function)

        event.add_field("lager_source", record.source)
        event.add_field("lager_message", record.message)
        event.add_field("lager_log_level_iota", int(record.level))
        event.add_field("lager_log_level", level_to_string(record.level))

        # The session value is namespaced so it is easy to reason about (and
        # ignore) next to event-scoped fields. The caller's data is not mutated.
        data = dict(record.data or {})
        if "session" in data:
            event.add_field("lager_session", data.pop("session"))
        event.add(data)

        # Keep the default timestamp (creation time) when the record's does not parse
        try:
            event.created_at = parse_lager_timestamp(record.timestamp)
        except ValueError as exc:
            event.add_field("lager_timestamp_parse_error", str(exc))

        try:
            event.send()
        except SendError as exc:
            logger.error("honeylager error: %s", exc)

    def close(self) -> None:
        """Flush and close the transport. Only the first call has an effect."""
        with self._close_lock:
            if self._closed.is_set():
                return
            self._closed.set()
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def configure(
    write_key: str,
    dataset: str,
    min_level=LogLevel.DEBUG,
    transport: Transport | None = None,
    providers: list[MetricProvider] | None = None,
    **options,
) -> HoneycombSink:
    """Build a sink from a write key, a dataset and a minimum level.

    Extra keyword options (api_host, send_timeout, max_pending) go to SinkConfig.
    """
    config = SinkConfig(
        write_key=write_key,
        dataset=dataset,
        min_level=parse_level(min_level),
        **options,
    )
    return HoneycombSink(config, transport=transport, providers=providers)
