"""Log record, log level, and delivery outcome models."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional


class LogLevel(IntEnum):
    DEBUG = 0
    INFO = 1
    ERROR = 2
    FATAL = 3


# Standard library names that have no exact counterpart
LEVEL_ALIASES = {
    "WARN": LogLevel.INFO,
    "WARNING": LogLevel.INFO,
    "CRITICAL": LogLevel.FATAL,
}


def level_to_string(level) -> str:
    """Render a level as its name, or "UNKNOWN" for anything unrecognised."""
    if isinstance(level, bool) or not isinstance(level, int):
        return "UNKNOWN"
    try:
        return LogLevel(level).name
    except ValueError:
        return "UNKNOWN"


def parse_level(value) -> LogLevel:
    """Parse a level from a name ("info"), an alias ("warning") or an ordinal ("1").

    Raises ValueError when the value does not name a known level.
    """
    if isinstance(value, LogLevel):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return LogLevel(value)

    text = str(value).strip().upper()
    if text.isdigit():
        return LogLevel(int(text))
    if text in LogLevel.__members__:
        return LogLevel[text]
    if text in LEVEL_ALIASES:
        return LEVEL_ALIASES[text]
    raise ValueError(f"unknown log level: {value!r}")


@dataclass
class LogRecord:
    source: str
    message: str
    level: int = LogLevel.INFO
    data: dict = field(default_factory=dict)
    # Decimal seconds since the epoch, e.g. "1504804895.094333887"
    timestamp: str = ""
    caller: Optional[str] = None


@dataclass
class DeliveryOutcome:
    status_code: int
    body: bytes = b""
    duration: float = 0.0
    error: Optional[BaseException] = None
    metadata: Any = None
