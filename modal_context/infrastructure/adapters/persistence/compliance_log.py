"""PostgreSQL compliance log adapter.

Append-only table of compliance evaluations, independent of the
transition attempts table. Driver errors become ComplianceLogError; the
ComplianceRecorder decides that they do not fail the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modal_context.application.ports.compliance_log import ComplianceLogPort
from modal_context.domain.errors.audit_log import ComplianceLogError
from modal_context.domain.models.compliance_record import ComplianceRecord

COMPLIANCE_RECORDS_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS compliance_records (
        id BIGSERIAL PRIMARY KEY,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        rule_id TEXT NOT NULL,
        rule_name TEXT NOT NULL,
        is_compliant BOOLEAN NOT NULL,
        message TEXT NOT NULL,
        "timestamp" TIMESTAMPTZ NOT NULL,
        transaction_id TEXT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_compliance_records_entity
        ON compliance_records (entity_type, entity_id, "timestamp" DESC, id DESC)
    """,
)


def _row_to_record(row: Mapping[str, Any]) -> ComplianceRecord:
    return ComplianceRecord(
        record_id=row["id"],
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        user_id=row["user_id"],
        rule_id=row["rule_id"],
        rule_name=row["rule_name"],
        is_compliant=row["is_compliant"],
        message=row["message"],
        timestamp=row["timestamp"],
        transaction_id=row["transaction_id"],
    )


class PostgresComplianceLog(ComplianceLogPort):
    """ComplianceLogPort backed by PostgreSQL via SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def ensure_schema(self) -> None:
        """Create the table and index if they do not exist."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for statement in COMPLIANCE_RECORDS_SCHEMA:
                        await session.execute(text(statement))
        except SQLAlchemyError as exc:
            raise ComplianceLogError("ensure_schema", str(exc)) from exc

    async def append(self, record: ComplianceRecord) -> int:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        text("""
                            INSERT INTO compliance_records (
                                entity_type, entity_id, user_id, rule_id,
                                rule_name, is_compliant, message, "timestamp",
                                transaction_id
                            ) VALUES (
                                :entity_type, :entity_id, :user_id, :rule_id,
                                :rule_name, :is_compliant, :message, :timestamp,
                                :transaction_id
                            )
                            RETURNING id
                        """),
                        {
                            "entity_type": record.entity_type,
                            "entity_id": record.entity_id,
                            "user_id": record.user_id,
                            "rule_id": record.rule_id,
                            "rule_name": record.rule_name,
                            "is_compliant": record.is_compliant,
                            "message": record.message,
                            "timestamp": record.timestamp,
                            "transaction_id": record.transaction_id,
                        },
                    )
                    record_id = result.scalar_one()
        except SQLAlchemyError as exc:
            raise ComplianceLogError("append", str(exc)) from exc
        return int(record_id)

    async def get_entity_records(
        self, entity_type: str, entity_id: str, limit: int
    ) -> tuple[ComplianceRecord, ...]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    text("""
                        SELECT id, entity_type, entity_id, user_id, rule_id,
                               rule_name, is_compliant, message, "timestamp",
                               transaction_id
                        FROM compliance_records
                        WHERE entity_type = :entity_type
                          AND entity_id = :entity_id
                        ORDER BY "timestamp" DESC, id DESC
                        LIMIT :limit
                    """),
                    {
                        "entity_type": entity_type,
                        "entity_id": str(entity_id),
                        "limit": max(limit, 0),
                    },
                )
                rows = result.mappings().all()
        except SQLAlchemyError as exc:
            raise ComplianceLogError("get_entity_records", str(exc)) from exc
        return tuple(_row_to_record(row) for row in rows)
