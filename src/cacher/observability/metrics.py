"""Prometheus metrics for the cache layer.

Provides counters for:
- Cache hits and misses by backend
- Cache writes by backend and reason (miss, forced, set)

Usage:
    from cacher.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(cache_type="RedisBackend").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, generate_latest

from cacher.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    cache_hits_total: Counter | None = None
    cache_misses_total: Counter | None = None
    cache_writes_total: Counter | None = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = registry or REGISTRY

        self.cache_hits_total = Counter(
            "cacher_cache_hits_total",
            "Cache hits",
            ["cache_type"],
            registry=self._registry,
        )

        self.cache_misses_total = Counter(
            "cacher_cache_misses_total",
            "Cache misses",
            ["cache_type"],
            registry=self._registry,
        )

        self.cache_writes_total = Counter(
            "cacher_cache_writes_total",
            "Cache writes",
            ["cache_type", "reason"],
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_cache_hit(cache_type: str) -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(cache_type=cache_type).inc()


def record_cache_write(cache_type: str, reason: str) -> None:
    """Record cache write.

    Args:
        cache_type: Backend label
        reason: Why the entry was written (miss, forced, set)
    """
    metrics = get_metrics()
    if metrics.cache_writes_total:
        metrics.cache_writes_total.labels(cache_type=cache_type, reason=reason).inc()


def sample_value(name: str, labels: dict[str, Any]) -> float:
    """Current value of a sample, 0.0 if absent or metrics are disabled."""
    metrics = get_metrics()
    if metrics._registry is None:
        return 0.0
    return metrics._registry.get_sample_value(name, labels) or 0.0
