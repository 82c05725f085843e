"""Audit log errors (transaction log and compliance log).

A transition that cannot be audited must not look successful. The
TransactionLogError is therefore the one error the coordinator lets
propagate to its callers. Compliance log failures are reported but
never abort the primary transaction.
"""

from __future__ import annotations

from modal_context.domain.exceptions import ModalContextError


class TransactionLogError(ModalContextError):
    """Raised when the transaction log cannot append or query attempts.

    Never silently swallowed.

    Attributes:
        operation: The log operation that failed (e.g., "append").
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Transaction log {operation} failed: {reason}")


class ComplianceLogError(ModalContextError):
    """Raised when a compliance record cannot be persisted.

    Attributes:
        operation: The log operation that failed (e.g., "append").
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Compliance log {operation} failed: {reason}")
