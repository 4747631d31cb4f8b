"""Example driver - ships a handful of sample log lines to Honeycomb."""

import logging
import random
import signal
import threading

from honeylager.config import load_config
from honeylager.handler import HoneycombHandler
from honeylager.reconciler import ResponseReader
from honeylager.sink import HoneycombSink


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    config = load_config()
    shutdown_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    logger.info(
        "Shipping to dataset=%s via %s (min level %s)",
        config.dataset,
        config.api_host,
        config.min_level.name,
    )

    with HoneycombSink(config) as sink:
        reader = ResponseReader(sink.responses())
        reader.start()

        component = logging.getLogger("my-component")
        component.setLevel(logging.DEBUG)
        component.addHandler(HoneycombHandler(sink))

        component.info("example-starting")
        for _ in range(10):
            if shutdown_event.is_set():
                break
            component.debug(
                "some-action",
                extra={
                    "data": {
                        "duration_ms": random.random() * 100 + 100,
                        "method": "get",
                        "hostname": "appserver15",
                        "payload_length": random.randrange(45) * 50 + 5,
                    }
                },
            )
            shutdown_event.wait(timeout=0.1)

        try:
            raise RuntimeError("This is an example error")
        except RuntimeError:
            component.exception("example-error")

        component.info("example-complete")

    # Closing the sink ends the response stream, so the reader finishes
    reader.join(timeout=30)
    logger.info("Complete: %s", reader.snapshot())


if __name__ == "__main__":
    main()
