"""Observability for the cache layer: structured logging and metrics."""

from cacher.observability.logging import ConsoleFormatter, JsonFormatter, configure_logging
from cacher.observability.metrics import (
    MetricsRegistry,
    get_metrics,
    record_cache_hit,
    record_cache_miss,
    record_cache_write,
)

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "configure_logging",
    "MetricsRegistry",
    "get_metrics",
    "record_cache_hit",
    "record_cache_miss",
    "record_cache_write",
]
