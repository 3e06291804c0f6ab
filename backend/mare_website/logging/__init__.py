"""Logging setup and the Loki log sink."""

from mare_website.logging.config import configure_logging
from mare_website.logging.loki import (
    BatchingQueueListener,
    BestEffortQueueHandler,
    LogShipper,
    LokiHandler,
)

__all__ = [
    "configure_logging",
    "BatchingQueueListener",
    "BestEffortQueueHandler",
    "LogShipper",
    "LokiHandler",
]
