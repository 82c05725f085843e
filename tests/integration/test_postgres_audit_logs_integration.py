"""Integration tests for the PostgreSQL audit logs and coordinator.

Runs against a real PostgreSQL container; excluded from the default
test run (select with ``pytest -m integration``).
"""

import asyncio

import pytest
from prometheus_client import CollectorRegistry
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from modal_context.bootstrap.coordinator import build_coordinator
from modal_context.config import LOG_BACKEND_POSTGRES, TransitionEngineConfig
from modal_context.domain.models.compliance_record import ComplianceRecord
from modal_context.domain.models.distributed_transaction import (
    CompensatingActions,
    DistributedTransactionContext,
)
from modal_context.domain.models.transition_attempt import TransitionAttempt
from modal_context.infrastructure.adapters.persistence import (
    PostgresComplianceLog,
    PostgresTransactionLog,
)
from modal_context.infrastructure.adapters.rule_sources import StaticRuleSource
from modal_context.infrastructure.monitoring.transition_metrics import (
    TransitionMetricsCollector,
)

pytestmark = pytest.mark.integration


@pytest.fixture
async def transaction_log(
    session_factory: async_sessionmaker[AsyncSession],
) -> PostgresTransactionLog:
    log = PostgresTransactionLog(session_factory)
    await log.ensure_schema()
    return log


class TestPostgresTransactionLog:
    """Round trips through a real transition_attempts table."""

    async def test_append_and_history(self, transaction_log: PostgresTransactionLog) -> None:
        first = await transaction_log.append(
            TransitionAttempt.succeeded(
                entity_type="task", entity_id=42, from_state="pending",
                to_state="in_progress", user_id=7, metadata={"source": "test"},
                duration_ms=1.5,
            )
        )
        second = await transaction_log.append(
            TransitionAttempt.failed(
                entity_type="task", entity_id=42, from_state="in_progress",
                to_state="pending", user_id=7,
                failure_reason="invalid transition", error_code="InvalidTransition",
            )
        )

        history = await transaction_log.get_entity_history("task", "42", limit=10)

        assert second > first
        assert [a.attempt_id for a in history] == [second, first]
        assert history[0].success is False
        assert history[0].error_code == "InvalidTransition"
        assert history[1].metadata == {"source": "test"}
        assert history[1].duration_ms == 1.5

    async def test_concurrent_appends_get_unique_ids(
        self, transaction_log: PostgresTransactionLog
    ) -> None:
        attempts = [
            TransitionAttempt.succeeded(
                entity_type="task", entity_id=i, from_state="pending",
                to_state="in_progress", user_id=1,
            )
            for i in range(10)
        ]

        ids = await asyncio.gather(*(transaction_log.append(a) for a in attempts))

        assert len(set(ids)) == 10

    async def test_failed_row_requires_reason(
        self,
        transaction_log: PostgresTransactionLog,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        """Test the table itself rejects a failure without a reason."""
        with pytest.raises(IntegrityError):
            async with session_factory() as session, session.begin():
                await session.execute(
                    text("""
                        INSERT INTO transition_attempts (
                            entity_type, entity_id, from_state, to_state,
                            user_id, "timestamp", success
                        ) VALUES ('task', '1', 'a', 'b', '1', now(), false)
                    """)
                )

    async def test_by_transaction_id(self, transaction_log: PostgresTransactionLog) -> None:
        for entity_id in (1, 2):
            await transaction_log.append(
                TransitionAttempt.succeeded(
                    entity_type="task", entity_id=entity_id, from_state="pending",
                    to_state="in_progress", user_id=1, transaction_id="tx-int",
                )
            )

        attempts = await transaction_log.get_by_transaction_id("tx-int")

        assert [a.entity_id for a in attempts] == ["1", "2"]


class TestPostgresComplianceLog:
    """Round trips through a real compliance_records table."""

    async def test_append_and_query(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        log = PostgresComplianceLog(session_factory)
        await log.ensure_schema()

        record_id = await log.append(
            ComplianceRecord(
                entity_type="task", entity_id="42", user_id="7", rule_id="R-1",
                rule_name="Owner only", is_compliant=False, message="not the owner",
            )
        )
        records = await log.get_entity_records("task", "42", limit=5)

        assert records[0].record_id == record_id
        assert records[0].is_compliant is False


class TestCoordinatorOnPostgres:
    """End-to-end coordinator runs with the PostgreSQL backend."""

    async def test_distributed_transaction_is_correlated(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        coordinator = await build_coordinator(
            TransitionEngineConfig(log_backend=LOG_BACKEND_POSTGRES),
            rule_source=StaticRuleSource({"task": {"pending": ["in_progress"]}}),
            metrics=TransitionMetricsCollector(registry=CollectorRegistry()),
            session_factory=session_factory,
        )
        compensated: list[str] = []

        async def fail(context: DistributedTransactionContext) -> None:
            context.record_step("tasks archived")
            raise RuntimeError("downstream refused")

        async def undo(context: DistributedTransactionContext) -> None:
            compensated.extend(context.steps)

        result = await coordinator.execute_distributed_transaction(
            "project_archive",
            "tx-dist",
            "active",
            "archived",
            actor_id=7,
            operation=fail,
            compensating_actions=CompensatingActions(on_failure=undo),
        )

        assert result.success is False
        assert compensated == ["tasks archived"]
        attempts = await coordinator.get_correlated_transactions("tx-dist")
        assert len(attempts) == 1
        assert attempts[0].failure_reason == "downstream refused"
        assert attempts[0].metadata["steps"] == ["tasks archived"]
