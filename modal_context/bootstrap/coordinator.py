"""Bootstrap wiring for the transaction coordinator.

Builds the rule source, loads the rule store, picks the audit log
backend and assembles a TransactionCoordinator from a
TransitionEngineConfig. A process-wide instance is kept for the API
layer; tests replace it with set_coordinator().
"""

from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from modal_context.application.ports.compliance_log import ComplianceLogPort
from modal_context.application.ports.rule_source import RuleSourceProtocol
from modal_context.application.ports.transaction_log import TransactionLogPort
from modal_context.application.ports.transition_metrics import (
    TransitionMetricsProtocol,
)
from modal_context.application.services.compliance_recorder import ComplianceRecorder
from modal_context.application.services.rule_store import RuleStore
from modal_context.application.services.transaction_coordinator import (
    TransactionCoordinator,
)
from modal_context.bootstrap.database import get_session_factory
from modal_context.config.transition_config import (
    LOG_BACKEND_POSTGRES,
    TransitionEngineConfig,
)
from modal_context.infrastructure.adapters.persistence import (
    PostgresComplianceLog,
    PostgresTransactionLog,
)
from modal_context.infrastructure.adapters.rule_sources import (
    FileRuleSource,
    StaticRuleSource,
)
from modal_context.infrastructure.monitoring.transition_metrics import (
    get_transition_metrics_collector,
)
from modal_context.infrastructure.stubs import (
    InMemoryComplianceLog,
    InMemoryTransactionLog,
)

logger = get_logger()

_coordinator: TransactionCoordinator | None = None
_coordinator_lock: asyncio.Lock | None = None
_coordinator_lock_loop: asyncio.AbstractEventLoop | None = None


def _get_coordinator_lock() -> asyncio.Lock:
    """Build lock for the running event loop (a new loop gets a new lock)."""
    global _coordinator_lock, _coordinator_lock_loop
    loop = asyncio.get_running_loop()
    if _coordinator_lock is None or _coordinator_lock_loop is not loop:
        _coordinator_lock = asyncio.Lock()
        _coordinator_lock_loop = loop
    return _coordinator_lock


def build_rule_source(config: TransitionEngineConfig) -> RuleSourceProtocol:
    """Rule file when configured, otherwise the built-in rules."""
    if config.rules_path is not None:
        return FileRuleSource(config.rules_path)
    return StaticRuleSource(description="builtin")


async def build_audit_logs(
    config: TransitionEngineConfig,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> tuple[TransactionLogPort, ComplianceLogPort]:
    """Create the transaction and compliance logs for the configured backend.

    The PostgreSQL tables are created if missing.
    """
    if config.log_backend == LOG_BACKEND_POSTGRES:
        factory = session_factory or get_session_factory()
        transaction_log = PostgresTransactionLog(factory)
        compliance_log = PostgresComplianceLog(factory)
        await transaction_log.ensure_schema()
        await compliance_log.ensure_schema()
        return transaction_log, compliance_log
    return InMemoryTransactionLog(), InMemoryComplianceLog()


async def build_coordinator(
    config: TransitionEngineConfig,
    *,
    rule_source: RuleSourceProtocol | None = None,
    metrics: TransitionMetricsProtocol | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> TransactionCoordinator:
    """Assemble a ready-to-use coordinator.

    Raises:
        RuleSourceError: If the initial rule load fails.
        TransactionLogError: If the PostgreSQL schema cannot be created.
    """
    log = logger.bind(
        component="coordinator_bootstrap",
        log_backend=config.log_backend,
        environment=config.environment,
    )
    source = rule_source or build_rule_source(config)
    rule_store = RuleStore(source)
    snapshot = await rule_store.reload()

    transaction_log, compliance_log = await build_audit_logs(config, session_factory)
    coordinator = TransactionCoordinator(
        rule_store=rule_store,
        transaction_log=transaction_log,
        compliance_recorder=ComplianceRecorder(compliance_log),
        metrics=metrics if metrics is not None else get_transition_metrics_collector(),
        config=config,
    )
    log.info(
        "transaction_coordinator_ready",
        rule_source=source.description,
        entity_types=sorted(snapshot.entity_types()),
        rules_version=snapshot.version,
    )
    return coordinator


async def get_coordinator() -> TransactionCoordinator:
    """Get the process-wide coordinator, building it from the environment."""
    global _coordinator
    if _coordinator is None:
        async with _get_coordinator_lock():
            if _coordinator is None:
                _coordinator = await build_coordinator(
                    TransitionEngineConfig.from_environment()
                )
    return _coordinator


def set_coordinator(coordinator: TransactionCoordinator) -> None:
    """Set custom coordinator for testing."""
    global _coordinator
    _coordinator = coordinator


def reset_coordinator() -> None:
    """Reset the singleton for testing."""
    global _coordinator, _coordinator_lock, _coordinator_lock_loop
    _coordinator = None
    _coordinator_lock = None
    _coordinator_lock_loop = None
