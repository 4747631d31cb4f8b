"""Bridge from the standard logging module to a HoneycombSink."""

import logging

from honeylager.models import LogLevel, LogRecord
from honeylager.sink import HoneycombSink
from honeylager.transport import TRANSPORT_THREAD_NAME

# The sink reports through these logger hierarchies and the HTTP client logs
# every request; forwarding those records back into the sink would loop forever.
INTERNAL_LOGGERS = ("honeylager", "urllib3", "requests")


def is_internal(record: logging.LogRecord) -> bool:
    if record.threadName == TRANSPORT_THREAD_NAME:
        return True
    return any(
        record.name == name or record.name.startswith(name + ".")
        for name in INTERNAL_LOGGERS
    )


def to_log_level(levelno: int) -> LogLevel:
    if levelno >= logging.CRITICAL:
        return LogLevel.FATAL
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class HoneycombHandler(logging.Handler):
    """logging.Handler that forwards each record to a HoneycombSink.

    Structured payload travels in ``extra``::

        logger.info("request-done", extra={"data": {"status": 200}, "session": "1.2"})

    Exception info is formatted into the ``error`` field.
    """

    def __init__(self, sink: HoneycombSink, level=logging.NOTSET, close_sink: bool = False):
        super().__init__(level)
        self._sink = sink
        self._close_sink = close_sink

    def to_log_record(self, record: logging.LogRecord) -> LogRecord:
        data = dict(getattr(record, "data", None) or {})
        session = getattr(record, "session", None)
        if session is not None:
            data["session"] = session
        if record.exc_info:
            data["error"] = self.formatException(record.exc_info)

        return LogRecord(
            source=record.name,
            message=record.getMessage(),
            level=to_log_level(record.levelno),
            data=data,
            timestamp=f"{record.created:.9f}",
            caller=f"{record.module}.{record.funcName}",
        )

    def formatException(self, exc_info) -> str:
        if self.formatter is not None:
            return self.formatter.formatException(exc_info)
        return logging.Formatter().formatException(exc_info)

    def emit(self, record: logging.LogRecord) -> None:
        if is_internal(record):
            return
        try:
            self._sink.log(self.to_log_record(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            if self._close_sink:
                self._sink.close()
        finally:
            super().close()
