"""Domain models for Modal Context.

Immutable records of the transition engine: rule sets, audited
transition attempts, compliance records, result envelopes, and the
shared context of distributed transactions.
"""

from modal_context.domain.models.compliance_record import ComplianceRecord
from modal_context.domain.models.distributed_transaction import (
    NO_COMPENSATION,
    CompensatingActions,
    CompensatingCallback,
    DistributedTransactionContext,
)
from modal_context.domain.models.entity_types import (
    EntityTypeRegistry,
    FocusSessionState,
    ReminderState,
    TaskState,
)
from modal_context.domain.models.transaction_result import (
    TransactionErrorCode,
    TransactionResult,
)
from modal_context.domain.models.transition_attempt import TransitionAttempt
from modal_context.domain.models.transition_check import (
    CoordinatorPhase,
    TransitionCheck,
)
from modal_context.domain.models.transition_rules import (
    RuleSnapshot,
    RuleSourceMapping,
    TransitionRuleSet,
)

__all__: list[str] = [
    "NO_COMPENSATION",
    "CompensatingActions",
    "CompensatingCallback",
    "ComplianceRecord",
    "CoordinatorPhase",
    "DistributedTransactionContext",
    "EntityTypeRegistry",
    "FocusSessionState",
    "ReminderState",
    "RuleSnapshot",
    "RuleSourceMapping",
    "TaskState",
    "TransactionErrorCode",
    "TransactionResult",
    "TransitionAttempt",
    "TransitionCheck",
    "TransitionRuleSet",
]
