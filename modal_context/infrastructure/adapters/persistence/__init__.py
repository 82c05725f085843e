"""PostgreSQL persistence adapters for the audit logs."""

from modal_context.infrastructure.adapters.persistence.compliance_log import (
    COMPLIANCE_RECORDS_SCHEMA,
    PostgresComplianceLog,
)
from modal_context.infrastructure.adapters.persistence.transaction_log import (
    TRANSITION_ATTEMPTS_SCHEMA,
    PostgresTransactionLog,
)

__all__: list[str] = [
    "COMPLIANCE_RECORDS_SCHEMA",
    "PostgresComplianceLog",
    "PostgresTransactionLog",
    "TRANSITION_ATTEMPTS_SCHEMA",
]
