"""Unit tests for coordinator and database bootstrap wiring."""

import asyncio
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from modal_context.bootstrap import coordinator as coordinator_module
from modal_context.bootstrap.coordinator import (
    build_audit_logs,
    build_coordinator,
    build_rule_source,
    get_coordinator,
    reset_coordinator,
    set_coordinator,
)
from modal_context.bootstrap.database import (
    get_database_url,
    mask_password,
    to_async_url,
)
from modal_context.config import LOG_BACKEND_POSTGRES, TransitionEngineConfig
from modal_context.domain.errors.rule_source import RuleSourceError
from modal_context.infrastructure.adapters.persistence import (
    PostgresComplianceLog,
    PostgresTransactionLog,
)
from modal_context.infrastructure.adapters.rule_sources import (
    FileRuleSource,
    StaticRuleSource,
)
from modal_context.infrastructure.monitoring.transition_metrics import (
    TransitionMetricsCollector,
)
from modal_context.infrastructure.stubs import (
    InMemoryComplianceLog,
    InMemoryTransactionLog,
)


@pytest.fixture(autouse=True)
def _reset_singleton() -> Iterator[None]:
    reset_coordinator()
    yield
    reset_coordinator()


@pytest.fixture
def metrics() -> TransitionMetricsCollector:
    return TransitionMetricsCollector(registry=CollectorRegistry())


class TestBuildRuleSource:
    """Tests for build_rule_source."""

    def test_builtin_when_no_path(self) -> None:
        source = build_rule_source(TransitionEngineConfig())

        assert isinstance(source, StaticRuleSource)
        assert source.description == "builtin"

    def test_file_when_path_configured(self, tmp_path: Path) -> None:
        source = build_rule_source(
            TransitionEngineConfig(rules_path=tmp_path / "transitions.yaml")
        )

        assert isinstance(source, FileRuleSource)


class TestBuildAuditLogs:
    """Tests for build_audit_logs."""

    async def test_memory_backend(self) -> None:
        transaction_log, compliance_log = await build_audit_logs(TransitionEngineConfig())

        assert isinstance(transaction_log, InMemoryTransactionLog)
        assert isinstance(compliance_log, InMemoryComplianceLog)

    async def test_postgres_backend_creates_schema(self) -> None:
        session = MagicMock()
        session.execute = AsyncMock()
        session.begin.return_value.__aenter__ = AsyncMock(return_value=None)
        session.begin.return_value.__aexit__ = AsyncMock(return_value=False)
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=session)
        factory.return_value.__aexit__ = AsyncMock(return_value=False)

        transaction_log, compliance_log = await build_audit_logs(
            TransitionEngineConfig(log_backend=LOG_BACKEND_POSTGRES), factory
        )

        assert isinstance(transaction_log, PostgresTransactionLog)
        assert isinstance(compliance_log, PostgresComplianceLog)
        statements = " ".join(str(c.args[0]) for c in session.execute.await_args_list)
        assert "transition_attempts" in statements
        assert "compliance_records" in statements


class TestBuildCoordinator:
    """Tests for build_coordinator."""

    async def test_loads_builtin_rules(self, metrics: TransitionMetricsCollector) -> None:
        coordinator = await build_coordinator(TransitionEngineConfig(), metrics=metrics)

        assert coordinator.rules_version == 1
        assert {"task", "reminder", "focus_session"} <= coordinator.list_entity_types()
        check = await coordinator.validate_transition("task", "pending", "in_progress")
        assert check.is_valid is True

    async def test_loads_rule_file(
        self, tmp_path: Path, metrics: TransitionMetricsCollector
    ) -> None:
        path = tmp_path / "transitions.yaml"
        path.write_text("transitions:\n  ticket:\n    open: [closed]\n", encoding="utf-8")

        coordinator = await build_coordinator(
            TransitionEngineConfig(rules_path=path), metrics=metrics
        )

        assert coordinator.list_entity_types() == frozenset({"ticket"})

    async def test_bad_rule_source_fails_startup(
        self, metrics: TransitionMetricsCollector
    ) -> None:
        with pytest.raises(RuleSourceError):
            await build_coordinator(
                TransitionEngineConfig(),
                rule_source=StaticRuleSource({"task": {"pending": "done"}}),
                metrics=metrics,
            )

    async def test_metrics_are_wired(self, metrics: TransitionMetricsCollector) -> None:
        coordinator = await build_coordinator(
            TransitionEngineConfig(),
            rule_source=StaticRuleSource({"task": {"pending": ["in_progress"]}}),
            metrics=metrics,
        )

        async def start() -> str:
            return "started"

        result = await coordinator.execute_transaction(
            "task", 1, "pending", "in_progress", actor_id=7, operation=start
        )

        assert result.success is True
        assert metrics.get_registry().get_sample_value(
            "transition_attempts_total",
            {
                "entity_type": "task",
                "outcome": "success",
                "service": metrics._service_name,
                "environment": metrics._environment,
            },
        ) == 1.0


class TestCoordinatorSingleton:
    """Tests for get/set/reset_coordinator."""

    async def test_set_coordinator_is_returned(
        self, metrics: TransitionMetricsCollector
    ) -> None:
        coordinator = await build_coordinator(TransitionEngineConfig(), metrics=metrics)
        set_coordinator(coordinator)

        assert await get_coordinator() is coordinator

    async def test_built_once_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TRANSITION_RULES_PATH", raising=False)
        monkeypatch.setenv("TRANSITION_LOG_BACKEND", "memory")

        first = await get_coordinator()

        assert await get_coordinator() is first

    def test_contended_build_across_event_loops(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a restarted event loop can build the coordinator again."""
        built: list[object] = []

        async def slow_build(config: TransitionEngineConfig) -> object:
            await asyncio.sleep(0)
            built.append(object())
            return built[-1]

        async def contend() -> list[object]:
            return list(await asyncio.gather(get_coordinator(), get_coordinator()))

        monkeypatch.setattr(coordinator_module, "build_coordinator", slow_build)

        first_loop = asyncio.run(contend())
        # Restarted app: instance gone, lock left over from the previous loop
        monkeypatch.setattr(coordinator_module, "_coordinator", None)
        second_loop = asyncio.run(contend())

        assert len(built) == 2
        assert first_loop == [built[0], built[0]]
        assert second_loop == [built[1], built[1]]


class TestDatabaseUrl:
    """Tests for database URL helpers."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
            ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
            ("postgresql+psycopg2://u@db/app", "postgresql+asyncpg://u@db/app"),
            ("postgresql+asyncpg://u@db/app", "postgresql+asyncpg://u@db/app"),
        ],
    )
    def test_to_async_url(self, url: str, expected: str) -> None:
        assert to_async_url(url) == expected

    def test_mask_password(self) -> None:
        assert (
            mask_password("postgresql+asyncpg://app:s3cret@db:5432/app")
            == "postgresql+asyncpg://app:***@db:5432/app"
        )
        assert mask_password("postgresql+asyncpg://db/app") == "postgresql+asyncpg://db/app"

    def test_missing_database_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with pytest.raises(ValueError, match="DATABASE_URL"):
            get_database_url()

    def test_database_url_converted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/app")

        assert get_database_url() == "postgresql+asyncpg://u:p@db/app"
