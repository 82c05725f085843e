"""In-memory compliance log for development and testing."""

from __future__ import annotations

import asyncio

from modal_context.application.ports.compliance_log import ComplianceLogPort
from modal_context.domain.errors.audit_log import ComplianceLogError
from modal_context.domain.models.compliance_record import ComplianceRecord


class InMemoryComplianceLog(ComplianceLogPort):
    """In-memory stub for ComplianceLogPort.

    Example:
        log = InMemoryComplianceLog()
        record_id = await log.append(record)
        log.clear()  # Reset for next test
    """

    def __init__(self) -> None:
        """Initialize the stub with empty storage."""
        self._records: list[ComplianceRecord] = []
        self._next_id = 1
        self._lock = asyncio.Lock()
        self._fail_next: str | None = None

    async def append(self, record: ComplianceRecord) -> int:
        """Store a record and assign it the next id.

        Raises:
            ComplianceLogError: If fail_next_append() was armed.
        """
        async with self._lock:
            if self._fail_next is not None:
                reason, self._fail_next = self._fail_next, None
                raise ComplianceLogError("append", reason)
            record_id = self._next_id
            self._next_id += 1
            self._records.append(record.with_record_id(record_id))
            return record_id

    async def get_entity_records(
        self, entity_type: str, entity_id: str, limit: int
    ) -> tuple[ComplianceRecord, ...]:
        """Get records for one entity, newest first."""
        matching = [
            r
            for r in reversed(self._records)
            if r.entity_type == entity_type and r.entity_id == str(entity_id)
        ]
        return tuple(matching[: max(limit, 0)])

    @property
    def records(self) -> tuple[ComplianceRecord, ...]:
        """All stored records in append order (for testing)."""
        return tuple(self._records)

    def fail_next_append(self, reason: str = "simulated storage failure") -> None:
        """Make the next append() raise ComplianceLogError (for testing)."""
        self._fail_next = reason

    def clear(self) -> None:
        """Clear all records for test isolation."""
        self._records.clear()
        self._next_id = 1
        self._fail_next = None
