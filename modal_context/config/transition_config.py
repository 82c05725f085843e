"""Transition engine configuration.

This module defines configuration for rule loading, audit history queries
and the audit log backend, with environment variable overrides for
production tuning.

Environment Variables:
- TRANSITION_RULES_PATH: YAML/JSON rule file (default: built-in rules)
- TRANSITION_HISTORY_DEFAULT_LIMIT: History rows when no limit given (default: 50)
- TRANSITION_HISTORY_MAX_LIMIT: Upper bound for history queries (default: 500)
- TRANSITION_LOG_BACKEND: "memory" or "postgres" (default: memory)
- ENVIRONMENT: "production" selects JSON logs (default: development)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

LOG_BACKEND_MEMORY = "memory"
LOG_BACKEND_POSTGRES = "postgres"
_LOG_BACKENDS = (LOG_BACKEND_MEMORY, LOG_BACKEND_POSTGRES)


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class TransitionEngineConfig:
    """Configuration for the transition engine.

    Attributes:
        rules_path: Rule file to load; None uses the built-in rules.
        history_default_limit: Rows returned by history queries without
            an explicit limit.
        history_max_limit: Upper bound applied to any history limit.
        log_backend: Audit log backend ("memory" or "postgres").
        environment: Deployment environment name.
    """

    rules_path: Path | None = None
    history_default_limit: int = 50
    history_max_limit: int = 500
    log_backend: str = LOG_BACKEND_MEMORY
    environment: str = "development"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.history_default_limit < 1:
            raise ValueError(
                f"history_default_limit must be positive, got {self.history_default_limit}"
            )
        if self.history_max_limit < self.history_default_limit:
            raise ValueError(
                f"history_max_limit ({self.history_max_limit}) must be at least "
                f"history_default_limit ({self.history_default_limit})"
            )
        if self.log_backend not in _LOG_BACKENDS:
            raise ValueError(
                f"log_backend must be one of {_LOG_BACKENDS}, got {self.log_backend!r}"
            )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def clamp_history_limit(self, limit: int | None) -> int:
        """Apply the default and maximum to a requested history limit."""
        if limit is None or limit < 1:
            return self.history_default_limit
        return min(limit, self.history_max_limit)

    @classmethod
    def from_environment(cls) -> TransitionEngineConfig:
        """Create config from environment variables with defaults.

        Returns:
            TransitionEngineConfig with values from environment or defaults.
        """
        rules_path = os.environ.get("TRANSITION_RULES_PATH")
        return cls(
            rules_path=Path(rules_path) if rules_path else None,
            history_default_limit=_get_int_env("TRANSITION_HISTORY_DEFAULT_LIMIT", 50),
            history_max_limit=_get_int_env("TRANSITION_HISTORY_MAX_LIMIT", 500),
            log_backend=os.environ.get("TRANSITION_LOG_BACKEND", LOG_BACKEND_MEMORY).lower(),
            environment=os.environ.get("ENVIRONMENT", "development"),
        )


# Default config (built-in rules, in-memory audit log)
DEFAULT_TRANSITION_ENGINE_CONFIG = TransitionEngineConfig()

# Testing config with small history windows
TEST_TRANSITION_ENGINE_CONFIG = TransitionEngineConfig(
    history_default_limit=5,
    history_max_limit=20,
)
