"""Transition metrics for Prometheus exposition.

Counters and histograms for coordinator outcomes:
- transition_attempts_total{entity_type, outcome}
- transition_duration_seconds{entity_type}
- compensation_failures_total{transaction_type}

``outcome`` is ``success`` or the TransactionErrorCode value of a failed
attempt, so rejection and failure rates can be split with a single
Prometheus query.
"""

from __future__ import annotations

import os
import threading

from prometheus_client import CollectorRegistry, Counter, Histogram

from modal_context.application.ports.transition_metrics import (
    TransitionMetricsProtocol,
)

# Thread lock for singleton initialization
_metrics_lock = threading.Lock()

DURATION_BUCKETS: tuple[float, ...] = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)


class TransitionMetricsCollector(TransitionMetricsProtocol):
    """Collects transition engine metrics for Prometheus.

    Attributes:
        transition_attempts_total: Counter of logged attempts by outcome.
        transition_duration_seconds: Histogram of operation durations.
        compensation_failures_total: Counter of compensating callbacks that raised.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize transition metrics collector.

        Args:
            registry: Optional custom registry for testing isolation.
        """
        self._registry = registry or CollectorRegistry()
        self._environment = os.environ.get("ENVIRONMENT", "development")
        self._service_name = os.environ.get("SERVICE_NAME", "modal-context")

        self.transition_attempts_total = Counter(
            name="transition_attempts_total",
            documentation="Total transition attempts appended to the transaction log",
            labelnames=["entity_type", "outcome", "service", "environment"],
            registry=self._registry,
        )

        # Wall time of the whole coordinator call, rejections included
        self.transition_duration_seconds = Histogram(
            name="transition_duration_seconds",
            documentation="Duration of the transition operation in seconds",
            labelnames=["entity_type", "service", "environment"],
            buckets=DURATION_BUCKETS,
            registry=self._registry,
        )

        self.compensation_failures_total = Counter(
            name="compensation_failures_total",
            documentation="Total compensating callbacks that raised",
            labelnames=["transaction_type", "service", "environment"],
            registry=self._registry,
        )

    def record_attempt(
        self, entity_type: str, outcome: str, duration_seconds: float | None
    ) -> None:
        """Record one logged attempt.

        Args:
            entity_type: Entity type (or transaction type for distributed runs).
            outcome: "success" or the error code of the failed attempt.
            duration_seconds: Coordinator call duration, None if not measured.
        """
        self.transition_attempts_total.labels(
            entity_type=entity_type,
            outcome=outcome,
            service=self._service_name,
            environment=self._environment,
        ).inc()
        if duration_seconds is not None:
            self.transition_duration_seconds.labels(
                entity_type=entity_type,
                service=self._service_name,
                environment=self._environment,
            ).observe(duration_seconds)

    def record_compensation_failure(self, transaction_type: str) -> None:
        self.compensation_failures_total.labels(
            transaction_type=transaction_type,
            service=self._service_name,
            environment=self._environment,
        ).inc()

    def get_registry(self) -> CollectorRegistry:
        """Get the collector registry."""
        return self._registry


# Singleton instance
_transition_metrics_collector: TransitionMetricsCollector | None = None


def get_transition_metrics_collector() -> TransitionMetricsCollector:
    """Get the singleton TransitionMetricsCollector instance (thread-safe).

    Uses double-checked locking pattern for thread-safe lazy initialization.
    """
    global _transition_metrics_collector
    if _transition_metrics_collector is None:
        with _metrics_lock:
            if _transition_metrics_collector is None:
                _transition_metrics_collector = TransitionMetricsCollector()
    return _transition_metrics_collector


def reset_transition_metrics_collector() -> None:
    """Reset the singleton collector (for testing only)."""
    global _transition_metrics_collector
    with _metrics_lock:
        _transition_metrics_collector = None
