"""Transition check outcome and coordinator lifecycle phases."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class CoordinatorPhase(str, Enum):
    """Phase of a single coordinator invocation.

    State Machine:
        START -> VALIDATING -> REJECTED (end)
        START -> VALIDATING -> EXECUTING -> SUCCEEDED (end)
        START -> VALIDATING -> EXECUTING -> FAILED (end)

    Distributed transactions skip VALIDATING/REJECTED and pass through
    COMPENSATING before SUCCEEDED or FAILED when callbacks are supplied.
    """

    START = "start"
    VALIDATING = "validating"
    REJECTED = "rejected"
    EXECUTING = "executing"
    COMPENSATING = "compensating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class TransitionCheck:
    """Result of checking one transition against the rules.

    Attributes:
        entity_type: Normalized entity type.
        from_state: Normalized from-state.
        to_state: Normalized to-state.
        is_valid: Whether the rules permit the transition.
        reason: Explanation when invalid, None when valid.
        available_transitions: Legal targets from from_state.
    """

    entity_type: str
    from_state: str
    to_state: str
    is_valid: bool
    reason: str | None = None
    available_transitions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "is_valid": self.is_valid,
            "reason": self.reason,
            "available_transitions": list(self.available_transitions),
        }
