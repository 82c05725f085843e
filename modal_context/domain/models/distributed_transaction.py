"""Distributed (saga-style) transaction models.

A DistributedTransactionContext is created by the coordinator for one
multi-entity operation and passed by reference to the operation and to
the compensating callback that follows it. Participants record their
progress on it; the coordinator logs the final result text.

CompensatingActions holds the two optional callbacks. At most one of them
runs per invocation: on_success after a normal return, on_failure after
the operation raised.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

CompensatingCallback = Callable[["DistributedTransactionContext"], Awaitable[None]]


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass
class DistributedTransactionContext:
    """Shared state for one distributed transaction invocation.

    Mutable on purpose: participants update ``result`` and append steps.
    Owned by the coordinator invocation that created it and discarded
    when that invocation returns.

    Attributes:
        transaction_id: Correlation id for every participant log entry.
        transaction_type: Name of the multi-entity operation.
        from_state: Aggregate state before the operation.
        to_state: Aggregate state the operation moves to.
        result: Free text progressively updated by participants.
        started_at: When the coordinator created the context (UTC).
        steps: Participant progress notes, in order.
    """

    transaction_id: str
    transaction_type: str
    from_state: str
    to_state: str
    result: str = ""
    started_at: datetime = field(default_factory=_utc_now)
    steps: list[str] = field(default_factory=list)

    def record_step(self, description: str) -> None:
        """Append a participant progress note."""
        self.steps.append(description)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "transaction_id": self.transaction_id,
            "transaction_type": self.transaction_type,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "result": self.result,
            "started_at": self.started_at.isoformat(),
            "steps": list(self.steps),
        }


@dataclass(frozen=True)
class CompensatingActions:
    """Optional callbacks reacting to a distributed transaction's outcome.

    Either callback may be None. Callbacks are best effort: an exception
    raised by one is logged and never changes the transaction outcome.

    Attributes:
        on_success: Runs after the operation returned normally.
        on_failure: Runs after the operation raised (e.g., to undo work).
    """

    on_success: CompensatingCallback | None = None
    on_failure: CompensatingCallback | None = None


NO_COMPENSATION = CompensatingActions()
