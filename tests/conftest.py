"""
Pytest configuration and shared fixtures for Modal Context tests.

Testing Standards:
- Async tests run under pytest-asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/ and are marked `integration`
"""

from typing import Any

import pytest

from modal_context.application.services.compliance_recorder import ComplianceRecorder
from modal_context.application.services.rule_store import RuleStore
from modal_context.application.services.transaction_coordinator import (
    TransactionCoordinator,
)
from modal_context.config.transition_config import TEST_TRANSITION_ENGINE_CONFIG
from modal_context.domain.models.transition_rules import RuleSnapshot
from modal_context.infrastructure.adapters.rule_sources import StaticRuleSource
from modal_context.infrastructure.stubs import (
    InMemoryComplianceLog,
    InMemoryTransactionLog,
)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from modal_context import __version__

    return __version__


@pytest.fixture
def task_rules() -> dict[str, Any]:
    """Minimal task lifecycle used by most coordinator tests."""
    return {
        "task": {
            "pending": ["in_progress"],
            "in_progress": ["completed"],
        }
    }


@pytest.fixture
def rule_source(task_rules: dict[str, Any]) -> StaticRuleSource:
    """Static rule source backed by task_rules."""
    return StaticRuleSource(task_rules, description="test")


@pytest.fixture
def rule_store(
    rule_source: StaticRuleSource, task_rules: dict[str, Any]
) -> RuleStore:
    """Rule store preloaded with task_rules (version 1)."""
    return RuleStore(
        rule_source,
        initial=RuleSnapshot.from_source(task_rules, version=1, source="test"),
    )


@pytest.fixture
def transaction_log() -> InMemoryTransactionLog:
    """Fresh in-memory transaction log."""
    return InMemoryTransactionLog()


@pytest.fixture
def compliance_log() -> InMemoryComplianceLog:
    """Fresh in-memory compliance log."""
    return InMemoryComplianceLog()


@pytest.fixture
def coordinator(
    rule_store: RuleStore,
    transaction_log: InMemoryTransactionLog,
    compliance_log: InMemoryComplianceLog,
) -> TransactionCoordinator:
    """Coordinator wired to in-memory logs and the test config."""
    return TransactionCoordinator(
        rule_store=rule_store,
        transaction_log=transaction_log,
        compliance_recorder=ComplianceRecorder(compliance_log),
        config=TEST_TRANSITION_ENGINE_CONFIG,
    )
