"""Logging bootstrap: configures structlog from the engine configuration."""

from __future__ import annotations

from modal_context.config.transition_config import TransitionEngineConfig
from modal_context.infrastructure.observability import configure_structlog


def configure_logging(config: TransitionEngineConfig | None = None) -> None:
    """Configure structlog for the configured environment (JSON in production)."""
    config = config or TransitionEngineConfig.from_environment()
    configure_structlog(environment=config.environment)
