"""Dynamic field providers - process health values recomputed for every event."""

import threading
from abc import ABC, abstractmethod

import psutil


class MetricProvider(ABC):
    """A named value that is evaluated fresh each time an event is built."""

    name: str = ""

    @abstractmethod
    def value(self):
        ...


class ThreadCountProvider(MetricProvider):
    name = "num_threads"

    def value(self) -> int:
        return threading.active_count()


class MemoryUsageProvider(MetricProvider):
    """Resident memory of the current process, in bytes."""

    name = "memory_allocation"

    def __init__(self) -> None:
        self._process = psutil.Process()

    def value(self) -> int:
        return self._process.memory_info().rss


def default_providers() -> list[MetricProvider]:
    return [ThreadCountProvider(), MemoryUsageProvider()]
