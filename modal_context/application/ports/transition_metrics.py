"""Transition metrics port.

Lets the coordinator report operational counters without importing the
Prometheus infrastructure. Implementations must never raise.
"""

from __future__ import annotations

from typing import Protocol


class TransitionMetricsProtocol(Protocol):
    """Operational metrics sink for coordinator outcomes."""

    def record_attempt(
        self, entity_type: str, outcome: str, duration_seconds: float | None
    ) -> None:
        """Record one logged attempt with its outcome label."""
        ...

    def record_compensation_failure(self, transaction_type: str) -> None:
        """Record a compensating callback that raised."""
        ...
