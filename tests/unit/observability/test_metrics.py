"""Tests for cache metrics."""

from __future__ import annotations

from prometheus_client import CollectorRegistry

from cacher.backends import MemoryBackend
from cacher.engine import Cacher
from cacher.observability.metrics import MetricsRegistry, get_metrics, sample_value


def _value(name: str, **labels: str) -> float:
    return sample_value(name, labels)


class TestMetricsRegistry:
    """Tests for MetricsRegistry."""

    def test_initialize_with_registry(self) -> None:
        registry = CollectorRegistry()
        metrics = MetricsRegistry()
        metrics.initialize(registry)

        assert metrics.cache_hits_total is not None
        metrics.cache_hits_total.labels(cache_type="test").inc()

        assert registry.get_sample_value("cacher_cache_hits_total", {"cache_type": "test"}) == 1.0
        assert b"cacher_cache_hits_total" in metrics.generate_latest()

    def test_initialize_is_idempotent(self) -> None:
        registry = CollectorRegistry()
        metrics = MetricsRegistry()
        metrics.initialize(registry)
        counter = metrics.cache_misses_total

        metrics.initialize(registry)

        assert metrics.cache_misses_total is counter

    def test_uninitialized_exposition(self) -> None:
        assert MetricsRegistry().generate_latest() == b"# Metrics disabled\n"

    def test_global_registry(self) -> None:
        assert get_metrics() is get_metrics()


class TestEngineMetrics:
    """The engine records hits, misses and writes."""

    def test_hits_misses_and_writes(self) -> None:
        cache = Cacher(backend=MemoryBackend(), enabled=True)
        labels = {"cache_type": "MemoryBackend"}

        hits = _value("cacher_cache_hits_total", **labels)
        misses = _value("cacher_cache_misses_total", **labels)
        miss_writes = _value("cacher_cache_writes_total", reason="miss", **labels)
        forced_writes = _value("cacher_cache_writes_total", reason="forced", **labels)

        cache.get("a", lambda: 1)
        cache.get("a", lambda: 1)
        cache.get("a", lambda: 2, force=True)

        assert _value("cacher_cache_misses_total", **labels) == misses + 1
        assert _value("cacher_cache_hits_total", **labels) == hits + 1
        assert _value("cacher_cache_writes_total", reason="miss", **labels) == miss_writes + 1
        assert _value("cacher_cache_writes_total", reason="forced", **labels) == forced_writes + 1
