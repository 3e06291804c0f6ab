"""Tests for the Loki log sink."""

import json
import logging

import httpx
import pytest

from mare_website.logging import LogShipper, LokiHandler


class RecordingTransport:
    """Collects push requests and answers with a fixed status."""

    def __init__(self, status_code: int = 204):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    @property
    def lines(self) -> list[str]:
        """Every shipped log line, in push order."""
        return [
            line
            for payload in self.payloads
            for stream in payload["streams"]
            for _, line in stream["values"]
        ]


def make_handler(transport, batch_size: int = 100) -> LokiHandler:
    handler = LokiHandler(
        "http://loki:3100/",
        labels={"source": "mare-website"},
        batch_size=batch_size,
        client=httpx.Client(transport=httpx.MockTransport(transport)),
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def make_record(
    name: str = "mare_website.test",
    msg: str = "hello",
    level: int = logging.INFO,
) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def refuse(request):
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def isolated_logger():
    """Logger that does not propagate to the root logger."""
    logger = logging.getLogger("mare_website.tests.loki")
    logger.propagate = False
    logger.setLevel(logging.INFO)
    yield logger
    logger.handlers.clear()


class TestLokiHandler:
    """Tests for LokiHandler."""

    def test_push_payload(self):
        """A flushed record becomes one value in a labelled stream."""
        transport = RecordingTransport()
        handler = make_handler(transport)
        record = make_record()

        handler.handle(record)
        assert transport.requests == []

        handler.flush()

        assert len(transport.requests) == 1
        assert str(transport.requests[0].url) == "http://loki:3100/loki/api/v1/push"
        stream = transport.payloads[0]["streams"][0]
        assert stream["stream"] == {"source": "mare-website", "level": "info"}
        timestamp, line = stream["values"][0]
        assert line == "hello"
        assert timestamp == str(int(record.created * 1_000_000_000))
        assert handler.dropped == 0

    def test_batch_is_one_push_with_a_stream_per_level(self):
        """Buffered records go out together, grouped by level."""
        transport = RecordingTransport()
        handler = make_handler(transport)

        handler.handle(make_record(msg="first"))
        handler.handle(make_record(msg="broken", level=logging.ERROR))
        handler.handle(make_record(msg="second"))
        handler.flush()

        assert len(transport.requests) == 1
        streams = {
            s["stream"]["level"]: [line for _, line in s["values"]]
            for s in transport.payloads[0]["streams"]
        }
        assert streams == {"info": ["first", "second"], "error": ["broken"]}

    def test_full_batch_is_pushed_without_flush(self):
        transport = RecordingTransport()
        handler = make_handler(transport, batch_size=2)

        handler.handle(make_record(msg="a"))
        handler.handle(make_record(msg="b"))
        handler.handle(make_record(msg="c"))

        assert transport.lines == ["a", "b"]

    def test_close_pushes_remaining_records(self):
        transport = RecordingTransport()
        handler = make_handler(transport)

        handler.handle(make_record(msg="last words"))
        handler.close()

        assert transport.lines == ["last words"]

    def test_server_error_is_dropped(self):
        """A rejected push is counted and swallowed."""
        handler = make_handler(RecordingTransport(status_code=500))

        handler.handle(make_record())
        handler.handle(make_record())
        handler.flush()

        assert handler.dropped == 2
        assert handler.buffer == []

    def test_connection_error_is_dropped(self):
        """An unreachable sink never raises into the caller."""
        handler = make_handler(refuse)

        handler.handle(make_record())
        handler.flush()

        assert handler.dropped == 1

    def test_transport_records_are_ignored(self):
        """Records from the HTTP client itself are not shipped."""
        transport = RecordingTransport()
        handler = make_handler(transport)

        handler.handle(make_record(name="httpx"))
        handler.handle(make_record(name="httpcore.connection"))
        handler.flush()

        assert transport.requests == []


class TestLogShipper:
    """Tests for the background shipper."""

    def test_ships_queued_records_on_shutdown(self, isolated_logger):
        """Everything logged before shutdown reaches the sink."""
        transport = RecordingTransport()
        shipper = LogShipper(make_handler(transport))
        shipper.start(isolated_logger)

        for i in range(3):
            isolated_logger.info("event %d", i)
        shipper.shutdown(isolated_logger)

        assert transport.lines == ["event 0", "event 1", "event 2"]
        assert shipper.queue_handler not in isolated_logger.handlers

    def test_queued_burst_is_batched(self, isolated_logger):
        """Records queued before the listener starts go out in one push."""
        transport = RecordingTransport()
        shipper = LogShipper(make_handler(transport))
        isolated_logger.addHandler(shipper.queue_handler)

        for i in range(5):
            isolated_logger.info("event %d", i)
        shipper.start(isolated_logger)
        shipper.shutdown(isolated_logger)

        assert len(transport.requests) == 1
        assert transport.lines == [f"event {i}" for i in range(5)]

    def test_unreachable_sink_does_not_fail_logging(self, isolated_logger):
        """Logging keeps working while the sink is down."""
        shipper = LogShipper(make_handler(refuse))
        shipper.start(isolated_logger)

        isolated_logger.info("still fine")
        shipper.shutdown(isolated_logger)

        assert shipper.dropped == 1

    def test_full_queue_drops_records(self):
        """Overflowing the queue drops records instead of blocking."""
        shipper = LogShipper(make_handler(RecordingTransport()), queue_size=1)

        shipper.queue_handler.handle(make_record(msg="first"))
        shipper.queue_handler.handle(make_record(msg="second"))

        assert shipper.queue.qsize() == 1
        assert shipper.dropped == 1

    def test_shutdown_without_start(self):
        """Shutting down an idle shipper is a no-op."""
        shipper = LogShipper(make_handler(RecordingTransport()))

        shipper.shutdown()
