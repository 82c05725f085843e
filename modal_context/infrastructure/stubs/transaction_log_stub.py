"""In-memory transaction log for development and testing.

Append-only: attempts are never updated or removed except by clear(),
which exists for test isolation only. Ids are assigned by the log in
append order, like a server-generated sequence.
"""

from __future__ import annotations

import asyncio

from modal_context.application.ports.transaction_log import TransactionLogPort
from modal_context.domain.errors.audit_log import TransactionLogError
from modal_context.domain.models.transition_attempt import TransitionAttempt


class InMemoryTransactionLog(TransactionLogPort):
    """In-memory stub for TransactionLogPort.

    Example:
        log = InMemoryTransactionLog()
        attempt_id = await log.append(attempt)
        history = await log.get_entity_history("task", "42", limit=10)
        log.clear()  # Reset for next test
    """

    def __init__(self) -> None:
        """Initialize the stub with empty storage."""
        self._attempts: list[TransitionAttempt] = []
        self._next_id = 1
        self._lock = asyncio.Lock()
        self._fail_next: str | None = None

    async def append(self, attempt: TransitionAttempt) -> int:
        """Store an attempt and assign it the next id.

        Raises:
            TransactionLogError: If fail_next_append() was armed.
        """
        async with self._lock:
            if self._fail_next is not None:
                reason, self._fail_next = self._fail_next, None
                raise TransactionLogError("append", reason)
            attempt_id = self._next_id
            self._next_id += 1
            self._attempts.append(attempt.with_attempt_id(attempt_id))
            return attempt_id

    async def get_entity_history(
        self, entity_type: str, entity_id: str, limit: int
    ) -> tuple[TransitionAttempt, ...]:
        """Get attempts for one entity, newest first."""
        matching = [
            a
            for a in reversed(self._attempts)
            if a.entity_type == entity_type and a.entity_id == str(entity_id)
        ]
        return tuple(matching[: max(limit, 0)])

    async def get_by_transaction_id(
        self, transaction_id: str
    ) -> tuple[TransitionAttempt, ...]:
        """Get attempts sharing a correlation id, oldest first."""
        return tuple(a for a in self._attempts if a.transaction_id == transaction_id)

    @property
    def attempts(self) -> tuple[TransitionAttempt, ...]:
        """All stored attempts in append order (for testing)."""
        return tuple(self._attempts)

    def fail_next_append(self, reason: str = "simulated storage failure") -> None:
        """Make the next append() raise TransactionLogError (for testing)."""
        self._fail_next = reason

    def clear(self) -> None:
        """Clear all attempts for test isolation."""
        self._attempts.clear()
        self._next_id = 1
        self._fail_next = None
