"""Event transport - queues events and delivers them to the Honeycomb events API."""

import datetime
import json
import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from urllib.parse import quote

import requests

from honeylager.config import DEFAULT_API_HOST
from honeylager.models import DeliveryOutcome

logger = logging.getLogger(__name__)

USER_AGENT = "honeylager/0.1.0"

# Records logged on this thread come from delivering events and must not
# become events themselves.
TRANSPORT_THREAD_NAME = "honeylager-transport"


class SendError(Exception):
    """Raised when the transport rejects an event before any network I/O."""


class Event:
    """A single outbound event: a bag of fields plus a timestamp and opaque metadata."""

    def __init__(self, transport: "Transport", write_key: str = "", dataset: str = ""):
        self._transport = transport
        self.write_key = write_key
        self.dataset = dataset
        self.fields: dict = {}
        self.created_at = datetime.datetime.now(datetime.timezone.utc)
        self.metadata = None

    def add_field(self, name: str, value) -> None:
        self.fields[name] = value

    def add(self, data: dict) -> None:
        for name, value in data.items():
            self.add_field(name, value)

    def send(self) -> None:
        """Hand the event to the transport. Raises SendError on rejection."""
        self._transport.send(self)

    def __repr__(self) -> str:
        return f"Event(dataset={self.dataset!r}, fields={self.fields!r}, metadata={self.metadata!r})"


class Transport(ABC):
    """Accepts events and publishes a stream of DeliveryOutcome values.

    The stream returned by responses() ends with a single None once the
    transport has been closed.
    """

    @abstractmethod
    def send(self, event: Event) -> None:
        ...

    @abstractmethod
    def responses(self) -> queue.Queue:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


def validate_event(event: Event) -> None:
    """Reject events that could never be delivered."""
    if not event.write_key:
        raise SendError("No write key specified; discarding event")
    if not event.dataset:
        raise SendError("No dataset specified; discarding event")
    if not event.fields:
        raise SendError("No fields added to event; won't send empty event")


class HTTPTransport(Transport):
    """Posts events one at a time from a background worker thread.

    send() only validates and enqueues; the worker performs the HTTP request
    and puts one DeliveryOutcome per event on the responses queue. At most
    max_pending outcomes are held; beyond that they are dropped with a warning.
    """

    def __init__(
        self,
        api_host: str = DEFAULT_API_HOST,
        timeout: float = 10.0,
        max_pending: int = 10000,
        session: requests.Session | None = None,
    ):
        self._api_host = api_host.rstrip("/")
        self._timeout = timeout
        self._max_pending = max_pending
        self._pending: queue.Queue = queue.Queue(maxsize=max_pending)
        # One slot above max_pending is kept free for the closing None
        self._responses: queue.Queue = queue.Queue(maxsize=max_pending + 1)
        self._session = session if session is not None else requests.Session()
        self._lock = threading.Lock()
        self._closed = False
        self._worker = threading.Thread(
            target=self._send_loop, name=TRANSPORT_THREAD_NAME, daemon=True
        )
        self._worker.start()
        logger.info("HTTP transport started for %s", self._api_host)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def send(self, event: Event) -> None:
        validate_event(event)
        with self._lock:
            if self._closed:
                raise SendError("Transport is closed; discarding event")
            try:
                self._pending.put_nowait(event)
            except queue.Full:
                raise SendError("Event queue overflow; discarding event") from None

    def responses(self) -> queue.Queue:
        return self._responses

    def close(self) -> None:
        """Stop accepting events, deliver what is pending, then end the response stream."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        # Poison pill tells the worker to stop after the pending events
        self._pending.put(None)
        self._worker.join()
        self._session.close()
        self._responses.put(None)
        logger.info("HTTP transport stopped")

    def event_url(self, dataset: str) -> str:
        return f"{self._api_host}/1/events/{quote(dataset, safe='')}"

    def _send_loop(self):
        while True:
            event = self._pending.get()
            if event is None:
                return
            self._publish(self._deliver(event))

    def _publish(self, outcome: DeliveryOutcome):
        # Only the worker adds outcomes, so the size can only shrink under us
        if self._responses.qsize() >= self._max_pending:
            logger.warning(
                "Response queue full, dropping outcome for event %r (status %d)",
                outcome.metadata,
                outcome.status_code,
            )
            return
        self._responses.put_nowait(outcome)

    def _deliver(self, event: Event) -> DeliveryOutcome:
        """POST one event and describe what happened."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Honeycomb-Team": event.write_key,
            "X-Honeycomb-Event-Time": event.created_at.isoformat(),
        }
        start = time.monotonic()
        try:
            body = json.dumps(event.fields, default=str)
            response = self._session.post(
                self.event_url(event.dataset),
                data=body,
                headers=headers,
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.debug("Delivery of event failed: %r", exc)
            return DeliveryOutcome(
                status_code=0,
                duration=time.monotonic() - start,
                error=exc,
                metadata=event.metadata,
            )

        return DeliveryOutcome(
            status_code=response.status_code,
            body=response.content,
            duration=time.monotonic() - start,
            metadata=event.metadata,
        )
