"""Configuration for the Modal Context transition engine."""

from modal_context.config.transition_config import (
    DEFAULT_TRANSITION_ENGINE_CONFIG,
    LOG_BACKEND_MEMORY,
    LOG_BACKEND_POSTGRES,
    TEST_TRANSITION_ENGINE_CONFIG,
    TransitionEngineConfig,
)

__all__: list[str] = [
    "DEFAULT_TRANSITION_ENGINE_CONFIG",
    "LOG_BACKEND_MEMORY",
    "LOG_BACKEND_POSTGRES",
    "TEST_TRANSITION_ENGINE_CONFIG",
    "TransitionEngineConfig",
]
