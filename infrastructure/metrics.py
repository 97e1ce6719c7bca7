"""Prometheus metrics for drop detection.

Metrics:
    drop_detections_total              Counter by method (sections/segments/.../error-fallback)
    drop_detection_latency_seconds     Histogram of uncached detection latency
    drop_cache_hits_total              Counter of result cache hits
    drop_cache_misses_total            Counter of result cache misses
    drop_provider_failures_total       Counter of analysis provider failures

All metrics live in a private registry so tests and multiple app instances
never collide on the global default registry.

Usage::

    from infrastructure.metrics import record_detection, record_drop_cache_hit
"""

from __future__ import annotations

import logging
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

_REGISTRY = CollectorRegistry()

drop_detections_total = Counter(
    "drop_detections_total",
    "Computed drop detections by method",
    ["method"],
    registry=_REGISTRY,
)

drop_detection_latency_seconds = Histogram(
    "drop_detection_latency_seconds",
    "Latency of uncached drop detections in seconds (fetch + analysis + cache write)",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
    registry=_REGISTRY,
)

drop_cache_hits_total = Counter(
    "drop_cache_hits_total",
    "Drop result cache hits",
    registry=_REGISTRY,
)

drop_cache_misses_total = Counter(
    "drop_cache_misses_total",
    "Drop result cache misses (absent or expired)",
    registry=_REGISTRY,
)

drop_provider_failures_total = Counter(
    "drop_provider_failures_total",
    "Analysis fetches or analyses that degraded to the error fallback",
    registry=_REGISTRY,
)


def record_detection(*, method: str, latency_seconds: float) -> None:
    """Record a computed (not cached) detection.

    Args:
        method: DropMethod value of the result.
        latency_seconds: Wall-clock time in seconds.
    """
    drop_detections_total.labels(method=method).inc()
    drop_detection_latency_seconds.observe(latency_seconds)


def record_drop_cache_hit() -> None:
    """Increment drop result cache hit counter."""
    drop_cache_hits_total.inc()


def record_drop_cache_miss() -> None:
    """Increment drop result cache miss counter."""
    drop_cache_misses_total.inc()


def record_provider_failure() -> None:
    drop_provider_failures_total.inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            result = detector.detect_drop(track)
        record_detection(method=result.method.value, latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
