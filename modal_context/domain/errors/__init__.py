"""Domain errors for Modal Context.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from ModalContextError.
"""

from modal_context.domain.errors.audit_log import (
    ComplianceLogError,
    TransactionLogError,
)
from modal_context.domain.errors.rule_source import RuleSourceError
from modal_context.domain.errors.transition import (
    ConcurrentTransitionError,
    InvalidTransitionError,
    InvalidTransitionRequestError,
    UnknownStateError,
)

__all__: list[str] = [
    "ComplianceLogError",
    "ConcurrentTransitionError",
    "InvalidTransitionError",
    "InvalidTransitionRequestError",
    "RuleSourceError",
    "TransactionLogError",
    "UnknownStateError",
]
