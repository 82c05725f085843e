"""Unit tests for structlog configuration and correlation ids."""

import uuid
from collections.abc import Iterator

import pytest
import structlog

from modal_context.bootstrap.logging import configure_logging
from modal_context.config import TransitionEngineConfig
from modal_context.infrastructure.observability import (
    configure_structlog,
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from modal_context.infrastructure.observability.logging import (
    _get_log_level,
    build_processors,
)


@pytest.fixture(autouse=True)
def _restore_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    set_correlation_id("")


class TestConfigureStructlog:
    """Tests for configure_structlog."""

    def test_production_renders_json(self) -> None:
        configure_structlog(environment="production")

        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    def test_development_renders_console(self) -> None:
        configure_structlog(environment="development")

        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in processors)

    def test_contextvars_and_correlation_are_merged(self) -> None:
        configure_structlog(environment="production")

        processors = structlog.get_config()["processors"]
        assert structlog.contextvars.merge_contextvars in processors
        assert correlation_id_processor in processors

    def test_log_level_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert _get_log_level() == 10

        monkeypatch.setenv("LOG_LEVEL", "nonsense")
        assert _get_log_level() == 20


class TestCorrelationId:
    """Tests for correlation id helpers."""

    def test_generate_is_uuid4(self) -> None:
        assert uuid.UUID(generate_correlation_id()).version == 4

    def test_set_and_get(self) -> None:
        set_correlation_id("req-123")

        assert get_correlation_id() == "req-123"

    def test_processor_adds_id(self) -> None:
        set_correlation_id("req-123")

        event = correlation_id_processor(None, "info", {"event": "x"})

        assert event["correlation_id"] == "req-123"

    def test_processor_keeps_explicit_id(self) -> None:
        set_correlation_id("req-123")

        event = correlation_id_processor(None, "info", {"correlation_id": "own"})

        assert event["correlation_id"] == "own"

    def test_processor_without_id(self) -> None:
        set_correlation_id("")

        assert "correlation_id" not in correlation_id_processor(None, "info", {})


class TestBuildProcessors:
    """Tests for build_processors and explicit levels."""

    def test_renderer_is_last(self) -> None:
        processors = build_processors("production")

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert processors[0] is structlog.contextvars.merge_contextvars

    def test_explicit_level_overrides_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        assert _get_log_level("warning") == 30


class TestConfigureLogging:
    """Tests for the bootstrap entry point."""

    def test_uses_config_environment(self) -> None:
        configure_logging(TransitionEngineConfig(environment="production"))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
