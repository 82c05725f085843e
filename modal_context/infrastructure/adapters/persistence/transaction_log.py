"""PostgreSQL transaction log adapter.

Append-only table of transition attempts. Ids come from a BIGSERIAL
sequence so concurrent writers never collide, and every append runs in
its own committed transaction so an attempt survives even if the
coordinator's return path is interrupted afterwards.

SQL Pattern:
    INSERT INTO transition_attempts (...) VALUES (...) RETURNING id

    SELECT ... FROM transition_attempts
    WHERE entity_type = :entity_type AND entity_id = :entity_id
    ORDER BY "timestamp" DESC, id DESC
    LIMIT :limit

Driver errors are re-raised as TransactionLogError, never swallowed.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from modal_context.application.ports.transaction_log import TransactionLogPort
from modal_context.domain.errors.audit_log import TransactionLogError
from modal_context.domain.models.transition_attempt import TransitionAttempt

logger = get_logger()

TRANSITION_ATTEMPTS_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS transition_attempts (
        id BIGSERIAL PRIMARY KEY,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        from_state TEXT NOT NULL,
        to_state TEXT NOT NULL,
        user_id TEXT NOT NULL,
        username TEXT NULL,
        "timestamp" TIMESTAMPTZ NOT NULL,
        success BOOLEAN NOT NULL,
        failure_reason TEXT NULL,
        error_code TEXT NULL,
        metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
        duration_ms DOUBLE PRECISION NULL,
        transaction_id TEXT NULL,
        CONSTRAINT transition_attempts_failure_reason_chk
            CHECK (success OR failure_reason IS NOT NULL)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_transition_attempts_entity
        ON transition_attempts (entity_type, entity_id, "timestamp" DESC, id DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_transition_attempts_transaction_id
        ON transition_attempts (transaction_id)
        WHERE transaction_id IS NOT NULL
    """,
)

_SELECT_COLUMNS = """
    id, entity_type, entity_id, from_state, to_state, user_id, username,
    "timestamp", success, failure_reason, error_code, metadata, duration_ms,
    transaction_id
"""


def _decode_metadata(value: Any) -> dict[str, Any]:
    # asyncpg returns JSONB as text unless a codec is registered
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _row_to_attempt(row: Mapping[str, Any]) -> TransitionAttempt:
    return TransitionAttempt(
        attempt_id=row["id"],
        entity_type=row["entity_type"],
        entity_id=row["entity_id"],
        from_state=row["from_state"],
        to_state=row["to_state"],
        user_id=row["user_id"],
        username=row["username"],
        timestamp=row["timestamp"],
        success=row["success"],
        failure_reason=row["failure_reason"],
        error_code=row["error_code"],
        metadata=_decode_metadata(row["metadata"]),
        duration_ms=row["duration_ms"],
        transaction_id=row["transaction_id"],
    )


class PostgresTransactionLog(TransactionLogPort):
    """TransactionLogPort backed by PostgreSQL via SQLAlchemy async sessions.

    Attributes:
        _session_factory: SQLAlchemy async session factory for DB access.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the adapter.

        Args:
            session_factory: SQLAlchemy async session factory.
        """
        self._session_factory = session_factory

    async def ensure_schema(self) -> None:
        """Create the table and indexes if they do not exist."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for statement in TRANSITION_ATTEMPTS_SCHEMA:
                        await session.execute(text(statement))
        except SQLAlchemyError as exc:
            raise TransactionLogError("ensure_schema", str(exc)) from exc
        logger.info("transition_attempts_schema_ready")

    async def append(self, attempt: TransitionAttempt) -> int:
        """Insert one attempt and return its sequence id.

        Raises:
            TransactionLogError: On any database error.
        """
        params = {
            "entity_type": attempt.entity_type,
            "entity_id": attempt.entity_id,
            "from_state": attempt.from_state,
            "to_state": attempt.to_state,
            "user_id": attempt.user_id,
            "username": attempt.username,
            "timestamp": attempt.timestamp,
            "success": attempt.success,
            "failure_reason": attempt.failure_reason,
            "error_code": attempt.error_code,
            "metadata": json.dumps(dict(attempt.metadata), default=str),
            "duration_ms": attempt.duration_ms,
            "transaction_id": attempt.transaction_id,
        }
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        text("""
                            INSERT INTO transition_attempts (
                                entity_type, entity_id, from_state, to_state,
                                user_id, username, "timestamp", success,
                                failure_reason, error_code, metadata,
                                duration_ms, transaction_id
                            ) VALUES (
                                :entity_type, :entity_id, :from_state, :to_state,
                                :user_id, :username, :timestamp, :success,
                                :failure_reason, :error_code, CAST(:metadata AS JSONB),
                                :duration_ms, :transaction_id
                            )
                            RETURNING id
                        """),
                        params,
                    )
                    attempt_id = result.scalar_one()
        except SQLAlchemyError as exc:
            raise TransactionLogError("append", str(exc)) from exc

        logger.debug(
            "transition_attempt_persisted",
            attempt_id=attempt_id,
            entity_type=attempt.entity_type,
            entity_id=attempt.entity_id,
        )
        return int(attempt_id)

    async def get_entity_history(
        self, entity_type: str, entity_id: str, limit: int
    ) -> tuple[TransitionAttempt, ...]:
        """Get attempts for one entity, newest first.

        Raises:
            TransactionLogError: On any database error.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"""
                        SELECT {_SELECT_COLUMNS}
                        FROM transition_attempts
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
            raise TransactionLogError("get_entity_history", str(exc)) from exc
        return tuple(_row_to_attempt(row) for row in rows)

    async def get_by_transaction_id(
        self, transaction_id: str
    ) -> tuple[TransitionAttempt, ...]:
        """Get attempts sharing a correlation id, oldest first.

        Raises:
            TransactionLogError: On any database error.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"""
                        SELECT {_SELECT_COLUMNS}
                        FROM transition_attempts
                        WHERE transaction_id = :transaction_id
                        ORDER BY "timestamp" ASC, id ASC
                    """),
                    {"transaction_id": transaction_id},
                )
                rows = result.mappings().all()
        except SQLAlchemyError as exc:
            raise TransactionLogError("get_by_transaction_id", str(exc)) from exc
        return tuple(_row_to_attempt(row) for row in rows)
