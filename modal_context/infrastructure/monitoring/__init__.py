"""Prometheus monitoring for the transition engine."""

from modal_context.infrastructure.monitoring.transition_metrics import (
    TransitionMetricsCollector,
    get_transition_metrics_collector,
    reset_transition_metrics_collector,
)

__all__: list[str] = [
    "TransitionMetricsCollector",
    "get_transition_metrics_collector",
    "reset_transition_metrics_collector",
]
