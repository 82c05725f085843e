"""Application ports - abstract interfaces implemented by infrastructure.

Ports define the seams of the transition engine:
- RuleSourceProtocol: where transition rules come from
- TransactionLogPort: append-only audit trail of transition attempts
- ComplianceLogPort: append-only record of compliance evaluations
- TransitionMetricsProtocol: operational counters
"""

from modal_context.application.ports.compliance_log import ComplianceLogPort
from modal_context.application.ports.rule_source import RuleSourceProtocol
from modal_context.application.ports.transaction_log import TransactionLogPort
from modal_context.application.ports.transition_metrics import (
    TransitionMetricsProtocol,
)

__all__: list[str] = [
    "ComplianceLogPort",
    "RuleSourceProtocol",
    "TransactionLogPort",
    "TransitionMetricsProtocol",
]
