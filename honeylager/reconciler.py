"""Response reader - drains delivery outcomes and reports success or failure per event."""

import logging
import queue
import threading
from collections.abc import Mapping

from honeylager.models import DeliveryOutcome
from honeylager.sink import METADATA_KEY_ID

logger = logging.getLogger(__name__)


class ResponseReader:
    """Single consumer of a transport's outcome stream.

    drain_outcomes() blocks until the stream ends, so callers will normally
    run it through start() on a dedicated thread. Per-outcome problems are
    logged and counted; they never stop the loop.
    """

    def __init__(self, responses: queue.Queue):
        self._responses = responses
        self._lock = threading.Lock()
        self._succeeded = 0
        self._failed = 0
        self._malformed = 0
        self._thread: threading.Thread | None = None

    @property
    def succeeded(self) -> int:
        with self._lock:
            return self._succeeded

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    @property
    def malformed(self) -> int:
        with self._lock:
            return self._malformed

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "succeeded": self._succeeded,
                "failed": self._failed,
                "malformed": self._malformed,
            }

    def start(self) -> threading.Thread:
        """Run drain_outcomes() on a daemon thread. The stream allows one consumer."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("ResponseReader is already draining its response stream")
        self._thread = threading.Thread(
            target=self.drain_outcomes, name="honeylager-responses", daemon=True
        )
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the drain thread. Returns True once it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def drain_outcomes(self) -> None:
        """Consume outcomes until the stream's closing None arrives."""
        while True:
            outcome = self._responses.get()
            if outcome is None:
                logger.debug("Response stream closed: %s", self.snapshot())
                return
            self.handle(outcome)

    def handle(self, outcome: DeliveryOutcome) -> bool:
        """Report a single outcome. Returns True when it was a success."""
        if outcome.status_code < 200 or outcome.status_code >= 300:
            with self._lock:
                self._failed += 1
            logger.error(
                "honeylager error: bad status code: '%d', err: '%s', response body: '%s'",
                outcome.status_code,
                outcome.error,
                _decode_body(outcome.body),
            )
            return False

        if outcome.metadata is None:
            with self._lock:
                self._malformed += 1
            logger.error("honeylager error: metadata was nil")
            return False

        if not isinstance(outcome.metadata, Mapping) or METADATA_KEY_ID not in outcome.metadata:
            with self._lock:
                self._malformed += 1
            logger.error(
                "honeylager error: metadata was not a mapping with key '%s', metadata: %r",
                METADATA_KEY_ID,
                outcome.metadata,
            )
            return False

        with self._lock:
            self._succeeded += 1
        logger.info(
            "Successfully sent event %s to Honeycomb in %.1fms",
            outcome.metadata[METADATA_KEY_ID],
            outcome.duration * 1000,
        )
        return True


def _decode_body(body) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)
