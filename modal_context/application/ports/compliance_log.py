"""Compliance log port (append-only record of business-rule evaluations)."""

from __future__ import annotations

from typing import Protocol

from modal_context.domain.models.compliance_record import ComplianceRecord


class ComplianceLogPort(Protocol):
    """Repository protocol for compliance records."""

    async def append(self, record: ComplianceRecord) -> int:
        """Persist one compliance record.

        Returns:
            The server-assigned record id.

        Raises:
            ComplianceLogError: If the record could not be persisted.
        """
        ...

    async def get_entity_records(
        self, entity_type: str, entity_id: str, limit: int
    ) -> tuple[ComplianceRecord, ...]:
        """Get compliance records for one entity, newest first.

        Raises:
            ComplianceLogError: If the query fails.
        """
        ...
