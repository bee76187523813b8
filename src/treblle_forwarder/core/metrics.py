"""
Prometheus metrics collection.

In-memory counters and histograms; Prometheus handles storage. Each
collector owns its registry so several can coexist in one process.
"""

import time
from typing import Any, Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

from .. import __version__

logger = structlog.get_logger(__name__)


def status_class(status_code: Optional[int]) -> str:
    """Bucket a delivery status for labelling ("2xx", "4xx", "transport", ...)."""
    if status_code is None:
        return "transport"
    return f"{status_code // 100}xx"


class MetricsCollector:
    """Centralized metrics collection for the forwarder."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.service_info = Info(
            "treblle_forwarder_service",
            "Treblle forwarder service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": __version__,
            "service": "treblle-forwarder",
        })

        # Batch metrics
        self.batch_size_events = Histogram(
            "forwarder_batch_size_events",
            "Number of events per received batch",
            buckets=[1, 5, 10, 25, 50, 100, 250, 500],
            registry=self.registry,
        )

        self.events_processed_total = Counter(
            "forwarder_events_processed_total",
            "Total events processed, by result",
            ["result"],
            registry=self.registry,
        )

        self.events_skipped_total = Counter(
            "forwarder_events_skipped_total",
            "Events skipped because of their event type (unknown or other)",
            ["event_type"],
            registry=self.registry,
        )

        self.normalization_failures_total = Counter(
            "forwarder_normalization_failures_total",
            "Events that could not be normalized",
            registry=self.registry,
        )

        # Delivery metrics
        self.publish_attempts_total = Counter(
            "forwarder_publish_attempts_total",
            "Delivery attempts to Treblle, by status class",
            ["status_class"],
            registry=self.registry,
        )

        self.publish_duration = Histogram(
            "forwarder_publish_duration_seconds",
            "Duration of a single delivery call in seconds",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        self.publish_retries_total = Counter(
            "forwarder_publish_retries_total",
            "Delivery retries",
            registry=self.registry,
        )

        self.publish_outcomes_total = Counter(
            "forwarder_publish_outcomes_total",
            "Final delivery outcome per event",
            ["outcome"],
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "forwarder_uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        self._start_time = time.time()

    def record_batch(self, size: int) -> None:
        self.batch_size_events.observe(size)

    def record_event(self, result: str) -> None:
        """Record one processed event ("success" or "failure")."""
        self.events_processed_total.labels(result=result).inc()

    def record_skipped(self, event_type: Any) -> None:
        """Record one skipped event; the label is "unknown" when absent, else "other"."""
        label = "other" if event_type else "unknown"
        self.events_skipped_total.labels(event_type=label).inc()

    def record_normalization_failure(self) -> None:
        self.normalization_failures_total.inc()

    def record_publish_attempt(self, status_code: Optional[int], duration_seconds: float) -> None:
        """Record one delivery call."""
        self.publish_attempts_total.labels(status_class=status_class(status_code)).inc()
        self.publish_duration.observe(duration_seconds)

    def record_retry(self) -> None:
        self.publish_retries_total.inc()

    def record_outcome(self, outcome: str) -> None:
        self.publish_outcomes_total.labels(outcome=outcome).inc()

    def update_uptime(self) -> None:
        self.uptime_seconds.set(time.time() - self._start_time)
