"""Application services for Modal Context.

- RuleStore: swap-on-write transition rules
- TransitionValidator: request normalization over the rule store
- ComplianceRecorder: fire-and-forget compliance evaluations
- TransactionCoordinator: validated, audited execution of transitions
"""

from modal_context.application.services.compliance_recorder import (
    ComplianceRecorder,
)
from modal_context.application.services.rule_store import RuleStore
from modal_context.application.services.transaction_coordinator import (
    TransactionCoordinator,
)
from modal_context.application.services.transition_validator import (
    TransitionValidator,
)

__all__: list[str] = [
    "ComplianceRecorder",
    "RuleStore",
    "TransactionCoordinator",
    "TransitionValidator",
]
