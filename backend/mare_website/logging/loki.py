"""Best-effort log shipping to a Loki push endpoint.

Records are handed to a bounded in-memory queue by ``BestEffortQueueHandler``
and pushed in batches from a background thread by ``LokiHandler``. A full
queue or a failed push drops the records; callers are never blocked or
failed by it.
"""

import copy
import logging
import queue
from logging.handlers import BufferingHandler, QueueHandler, QueueListener

import httpx

PUSH_PATH = "/loki/api/v1/push"

# The sink's own HTTP client logs through these
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def _not_transport_record(record: logging.LogRecord) -> bool:
    return not record.name.startswith(_TRANSPORT_LOGGERS)


class LokiHandler(BufferingHandler):
    """
    Buffer formatted records and push them as Loki streams.

    The buffer is pushed in one request when it reaches ``batch_size``
    records, when ``flush`` is called, and on ``close``. Records are grouped
    into one stream per level.
    """

    def __init__(
        self,
        url: str,
        labels: dict[str, str],
        timeout: float = 3.0,
        batch_size: int = 100,
        client: httpx.Client | None = None,
        level: int = logging.NOTSET,
    ):
        super().__init__(batch_size)
        self.setLevel(level)
        self.push_url = url.rstrip("/") + PUSH_PATH
        self.labels = dict(labels)
        self.client = client or httpx.Client(timeout=timeout)
        self.dropped = 0
        self.addFilter(_not_transport_record)

    def build_payload(self, records: list[logging.LogRecord]) -> dict:
        """Loki push body for a batch of records."""
        streams: dict[str, dict] = {}
        for record in records:
            level = record.levelname.lower()
            stream = streams.setdefault(
                level, {"stream": {**self.labels, "level": level}, "values": []}
            )
            timestamp_ns = str(int(record.created * 1_000_000_000))
            stream["values"].append([timestamp_ns, self.format(record)])
        return {"streams": list(streams.values())}

    def flush(self) -> None:
        self.acquire()
        try:
            if not self.buffer:
                return
            records, self.buffer = self.buffer, []
            try:
                response = self.client.post(self.push_url, json=self.build_payload(records))
                response.raise_for_status()
            except Exception:
                self.dropped += len(records)
        finally:
            self.release()

    def handleError(self, record: logging.LogRecord) -> None:
        self.dropped += 1

    def close(self) -> None:
        try:
            # BufferingHandler.close pushes what is still buffered
            super().close()
        finally:
            self.client.close()


class BestEffortQueueHandler(QueueHandler):
    """Queue handler that drops records instead of raising when the queue is full."""

    def __init__(self, log_queue: queue.Queue):
        super().__init__(log_queue)
        self.dropped = 0
        self.addFilter(_not_transport_record)

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # Formatting happens in LokiHandler; structlog keeps its event dict in msg
        return copy.copy(record)

    def handleError(self, record: logging.LogRecord) -> None:
        self.dropped += 1


class BatchingQueueListener(QueueListener):
    """Queue listener that pushes buffered records once the queue runs dry."""

    def handle(self, record: logging.LogRecord) -> None:
        super().handle(record)
        if self.queue.empty():
            for handler in self.handlers:
                handler.flush()


class LogShipper:
    """Owns the queue, the listener thread and the Loki handler."""

    def __init__(self, handler: LokiHandler, queue_size: int = 10000):
        self.handler = handler
        self.queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self.queue_handler = BestEffortQueueHandler(self.queue)
        self.listener = BatchingQueueListener(self.queue, handler, respect_handler_level=True)
        self._started = False

    @property
    def dropped(self) -> int:
        return self.queue_handler.dropped + self.handler.dropped

    def start(self, logger: logging.Logger | None = None) -> None:
        """Attach to ``logger`` (root by default) and start the push thread."""
        if self._started:
            return
        (logger or logging.getLogger()).addHandler(self.queue_handler)
        self.listener.start()
        self._started = True

    def shutdown(self, logger: logging.Logger | None = None) -> None:
        """Detach, push whatever is still queued and close the HTTP client."""
        if not self._started:
            return
        (logger or logging.getLogger()).removeHandler(self.queue_handler)
        self.listener.stop()
        self.handler.close()
        self._started = False
