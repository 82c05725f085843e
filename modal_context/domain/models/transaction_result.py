"""Transaction result envelope.

Every coordinator entry point that runs an operation returns a
TransactionResult instead of raising. Exactly one of the result value or
the error code/message pair is populated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class TransactionErrorCode(str, Enum):
    """Stable, language-neutral error codes for failed transactions.

    Codes:
        INVALID_TRANSITION: from_state -> to_state not permitted
        INVALID_REQUEST: entity type or a state was empty/malformed
        OPERATION_FAILED: the wrapped business operation raised
        CONCURRENCY_CONFLICT: storage reported a concurrent modification
        CANCELLED: the invocation was cancelled before completing
    """

    INVALID_TRANSITION = "InvalidTransition"
    INVALID_REQUEST = "InvalidRequest"
    OPERATION_FAILED = "OperationFailed"
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class TransactionResult(Generic[T]):
    """Uniform outcome of a coordinated transaction.

    Attributes:
        success: Whether the transaction was committed.
        result: Operation's return value (only when success).
        error_code: Stable error code (only when failed).
        error_message: Human-readable failure description (only when failed).
        attempt_id: Id of the logged TransitionAttempt.
        transaction_id: Correlation id, if any.
    """

    success: bool
    result: T | None = None
    error_code: TransactionErrorCode | None = None
    error_message: str | None = None
    attempt_id: int | None = None
    transaction_id: str | None = None

    def __post_init__(self) -> None:
        """Enforce that exactly one of result or error is populated."""
        if self.success:
            if self.error_code is not None or self.error_message is not None:
                raise ValueError("successful result must not carry an error")
        else:
            if self.error_code is None or not self.error_message:
                raise ValueError("failed result requires error_code and error_message")
            if self.result is not None:
                raise ValueError("failed result must not carry a result value")

    @classmethod
    def succeeded(
        cls,
        result: T,
        attempt_id: int | None = None,
        transaction_id: str | None = None,
    ) -> TransactionResult[T]:
        return cls(
            success=True,
            result=result,
            attempt_id=attempt_id,
            transaction_id=transaction_id,
        )

    @classmethod
    def failed(
        cls,
        error_code: TransactionErrorCode,
        error_message: str,
        attempt_id: int | None = None,
        transaction_id: str | None = None,
    ) -> TransactionResult[T]:
        return cls(
            success=False,
            error_code=error_code,
            error_message=error_message,
            attempt_id=attempt_id,
            transaction_id=transaction_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (result value included as-is)."""
        return {
            "success": self.success,
            "result": self.result,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": self.error_message,
            "attempt_id": self.attempt_id,
            "transaction_id": self.transaction_id,
        }
