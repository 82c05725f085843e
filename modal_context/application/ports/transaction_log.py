"""Transaction log port (append-only audit trail of transition attempts).

Audit Guarantees:
- Every coordinator invocation produces exactly one append()
- append() must succeed or raise; failures are never swallowed
- Records are never updated or deleted through this port

Developer Golden Rules:
1. FAIL LOUD - Wrap driver errors in TransactionLogError, never return None
2. SERVER IDS - Ids are assigned by the log, not by callers
3. SAFE FOR CONCURRENT WRITERS - append() may be called from many tasks
"""

from __future__ import annotations

from typing import Protocol

from modal_context.domain.models.transition_attempt import TransitionAttempt


class TransactionLogPort(Protocol):
    """Repository protocol for transition attempts."""

    async def append(self, attempt: TransitionAttempt) -> int:
        """Durably persist one transition attempt.

        Args:
            attempt: The attempt to record (attempt_id is ignored).

        Returns:
            The server-assigned attempt id.

        Raises:
            TransactionLogError: If the attempt could not be persisted.
        """
        ...

    async def get_entity_history(
        self, entity_type: str, entity_id: str, limit: int
    ) -> tuple[TransitionAttempt, ...]:
        """Get attempts for one entity, newest first.

        Args:
            entity_type: Entity type name.
            entity_id: Entity identifier.
            limit: Maximum number of attempts to return.

        Returns:
            Tuple of attempts, newest first (empty if none).

        Raises:
            TransactionLogError: If the query fails.
        """
        ...

    async def get_by_transaction_id(
        self, transaction_id: str
    ) -> tuple[TransitionAttempt, ...]:
        """Get all attempts tagged with a correlation id, oldest first.

        Raises:
            TransactionLogError: If the query fails.
        """
        ...
