"""Rule source port.

Abstract interface for reading transition rules in the rule source
format ``entity_type -> from_state -> [to_state, ...]``. The rule store
calls load() at startup and on every reload.
"""

from __future__ import annotations

from typing import Protocol

from modal_context.domain.models.transition_rules import RuleSourceMapping


class RuleSourceProtocol(Protocol):
    """Protocol for loading transition rules.

    Implementations must return a complete rule mapping on every call.
    Missing entries are treated as "no legal transitions", never as
    wildcard-allow.
    """

    @property
    def description(self) -> str:
        """Human-readable name of the source (path, "static", ...)."""
        ...

    async def load(self) -> RuleSourceMapping:
        """Load the full rule mapping.

        Returns:
            Mapping entity_type -> from_state -> sequence of to_state.

        Raises:
            RuleSourceError: If the source cannot be read or parsed.
        """
        ...
