"""In-memory stub adapters for development and testing."""

from modal_context.infrastructure.stubs.compliance_log_stub import (
    InMemoryComplianceLog,
)
from modal_context.infrastructure.stubs.transaction_log_stub import (
    InMemoryTransactionLog,
)

__all__: list[str] = ["InMemoryComplianceLog", "InMemoryTransactionLog"]
