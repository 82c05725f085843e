"""Compliance recorder service.

Records business-rule evaluations made alongside a transition. Recording
is fire-and-forget relative to the primary transaction: a failure to
persist a compliance record is logged and reported as None, and never
rolls back or fails the transition it accompanies.

A non-compliant evaluation is data, not an error. It is stored like any
other record and logged at warning level; callers decide what to do
with it.
"""

from __future__ import annotations

from structlog import get_logger

from modal_context.application.ports.compliance_log import ComplianceLogPort
from modal_context.domain.errors.audit_log import ComplianceLogError
from modal_context.domain.models.compliance_record import ComplianceRecord

logger = get_logger()


class ComplianceRecorder:
    """Appends compliance evaluations to the compliance log."""

    def __init__(self, compliance_log: ComplianceLogPort) -> None:
        self._compliance_log = compliance_log

    async def record(
        self,
        entity_type: str,
        entity_id: str | int,
        actor_id: str | int,
        rule_id: str,
        rule_name: str,
        is_compliant: bool,
        message: str,
        transaction_id: str | None = None,
    ) -> ComplianceRecord | None:
        """Record one compliance evaluation.

        Args:
            entity_type: Entity type name.
            entity_id: Entity identifier.
            actor_id: Acting user.
            rule_id: Stable rule identifier.
            rule_name: Human-readable rule name.
            is_compliant: Verdict of the evaluation.
            message: Explanation of the verdict.
            transaction_id: Correlation id of the related transaction.

        Returns:
            The stored record (with record_id), or None if it could not
            be persisted.
        """
        log = logger.bind(
            entity_type=entity_type,
            entity_id=str(entity_id),
            rule_id=rule_id,
            transaction_id=transaction_id,
        )
        try:
            record = ComplianceRecord(
                entity_type=entity_type,
                entity_id=str(entity_id),
                user_id=str(actor_id),
                rule_id=rule_id,
                rule_name=rule_name,
                is_compliant=is_compliant,
                message=message,
                transaction_id=transaction_id,
            )
            record_id = await self._compliance_log.append(record)
        except ComplianceLogError as exc:
            log.error("compliance_record_failed", error=str(exc))
            return None
        except Exception as exc:
            log.exception(
                "compliance_record_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return None

        if is_compliant:
            log.info("compliance_check_passed", record_id=record_id)
        else:
            log.warning(
                "compliance_check_failed",
                record_id=record_id,
                rule_name=rule_name,
                message=message,
            )
        return record.with_record_id(record_id)

    async def get_entity_compliance(
        self, entity_type: str, entity_id: str | int, limit: int
    ) -> tuple[ComplianceRecord, ...]:
        """Get compliance records for an entity, newest first.

        Raises:
            ComplianceLogError: If the query fails.
        """
        return await self._compliance_log.get_entity_records(
            entity_type, str(entity_id), limit
        )
