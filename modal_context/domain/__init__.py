"""
Domain layer - Pure business logic for Modal Context.

This layer contains:
- Transition rule sets and rule snapshots
- Audit records (transition attempts, compliance records)
- Result envelopes and distributed transaction context
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure, or api.
Only stdlib and typing imports are allowed.
"""

from modal_context.domain.errors import (
    InvalidTransitionError,
    RuleSourceError,
    TransactionLogError,
)
from modal_context.domain.exceptions import ModalContextError

__all__: list[str] = [
    "InvalidTransitionError",
    "ModalContextError",
    "RuleSourceError",
    "TransactionLogError",
]
