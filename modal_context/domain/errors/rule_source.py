"""Rule source errors.

Raised when transition rules cannot be read or do not match the rule
source format ``entity_type -> from_state -> [to_state, ...]``.
"""

from __future__ import annotations

from modal_context.domain.exceptions import ModalContextError


class RuleSourceError(ModalContextError):
    """Raised when rule loading or rule validation fails.

    A failed reload never replaces the rules currently in effect.

    Attributes:
        source: Description of the rule source (path, "static", ...).
        reason: What was wrong with it.
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Rule source error in {source}: {reason}")
