"""
Logging setup for the mare service.

structlog renders every event; stdlib logging routes it to stdout and,
when ``loki_url`` is configured, to the Loki sink. Records from third-party
libraries (uvicorn, SQLAlchemy) go through the same formatters.
"""

import logging
import os
import sys

import structlog

from mare_website.config import Settings, get_settings
from mare_website.logging.loki import LogShipper, LokiHandler

# Loggers that are too chatty below WARNING
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "uvicorn.access")


def add_pid(_, __, event_dict):
    """Processor that stamps the process id on every event."""
    event_dict["pid"] = os.getpid()
    return event_dict


def shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(config: Settings | None = None) -> LogShipper | None:
    """
    Configure structlog and the root logger.

    Returns the started LogShipper when a Loki URL is configured, so the
    caller can flush it on shutdown, or None otherwise.
    """
    config = config or get_settings()
    pre_chain = shared_processors()

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(console)
    root.setLevel(config.log_level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not config.loki_url:
        return None

    loki = LokiHandler(
        config.loki_url,
        labels={"source": config.log_source},
        timeout=config.log_sink_timeout,
        batch_size=config.log_batch_size,
    )
    loki.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                add_pid,
                structlog.processors.JSONRenderer(),
            ],
        )
    )

    shipper = LogShipper(loki, queue_size=config.log_queue_size)
    shipper.start(root)
    structlog.get_logger(__name__).info(
        "logging_configured", loki_url=config.loki_url, source=config.log_source
    )
    return shipper
