"""structlog setup for the transition engine.

Production renders one JSON object per line; every other environment
gets the colored console renderer. Both share the same processor chain,
so fields look identical whichever renderer is active:

    {
        "timestamp": "2026-01-05T12:00:00.000000Z",
        "level": "info",
        "event": "transaction_succeeded",
        "correlation_id": "9f0c...",
        "transaction_id": "tx-1",
        "entity_type": "task",
        ...
    }

``transaction_id`` comes from structlog.contextvars (bound by the
coordinator for distributed runs), ``correlation_id`` from the request
middleware.

Usage:
    from modal_context.infrastructure.observability import configure_structlog

    configure_structlog(environment="production")
"""

import logging
import os
from typing import cast

import structlog
from structlog.typing import Processor

from modal_context.infrastructure.observability.correlation import (
    correlation_id_processor,
)

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _get_log_level(level_name: str | None = None) -> int:
    """Resolve a level name (or LOG_LEVEL) to a logging constant, INFO if unknown."""
    name = (level_name or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def build_processors(environment: str) -> list[Processor]:
    """Processor chain for an environment, renderer last."""
    renderer: Processor
    if environment == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def configure_structlog(
    environment: str = "production", log_level: str | None = None
) -> None:
    """Configure structlog once at startup.

    Args:
        environment: 'production' for JSON output, anything else for console.
        log_level: Level name overriding LOG_LEVEL.
    """
    level = _get_log_level(log_level)

    # Library loggers (sqlalchemy, uvicorn) follow the same threshold
    logging.basicConfig(level=level, format="%(message)s")

    structlog.configure(
        processors=build_processors(environment),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
