"""Infrastructure adapters implementing application ports."""

from modal_context.infrastructure.adapters.rule_sources import (
    DEFAULT_TRANSITION_RULES,
    FileRuleSource,
    StaticRuleSource,
)

__all__: list[str] = [
    "DEFAULT_TRANSITION_RULES",
    "FileRuleSource",
    "StaticRuleSource",
]
