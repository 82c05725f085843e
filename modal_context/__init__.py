"""
Modal Context - entity state-transition and transaction coordination.

Validates named state transitions against per-entity-type rule sets, runs
caller-supplied operations only when a transition is legal, and keeps an
append-only audit trail of every attempt, including multi-entity
transactions with compensating callbacks.

Audit Guarantees:
- Every coordinator invocation appends exactly one transition attempt
- An unaudited transition is worse than a failed one (log failures propagate)
- Absence of a rule never means "allow"
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
