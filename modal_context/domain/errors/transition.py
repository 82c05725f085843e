"""State transition errors for the rule-driven transition engine.

This module defines errors raised while normalizing or checking a
claimed transition. The coordinator never lets these escape to its
callers; it converts them into failure results with stable error codes.
"""

from __future__ import annotations

from collections.abc import Sequence

from modal_context.domain.exceptions import ModalContextError


class InvalidTransitionError(ModalContextError):
    """Raised when a transition is not in the entity type's rule set.

    Attributes:
        entity_type: Entity type the transition was checked against.
        from_state: Current state claimed by the caller.
        to_state: Attempted target state.
        allowed_transitions: Legal target states from from_state.
    """

    def __init__(
        self,
        entity_type: str,
        from_state: str,
        to_state: str,
        allowed_transitions: Sequence[str] | None = None,
    ) -> None:
        """Initialize invalid transition error.

        Args:
            entity_type: Entity type name.
            from_state: Current state.
            to_state: Attempted target state.
            allowed_transitions: Valid states from from_state (optional).
        """
        self.entity_type = entity_type
        self.from_state = from_state
        self.to_state = to_state
        self.allowed_transitions = tuple(allowed_transitions or ())

        allowed_str = (
            f" Valid transitions: {list(self.allowed_transitions)}"
            if self.allowed_transitions
            else ""
        )
        super().__init__(
            f"Invalid transition for {entity_type}: "
            f"{from_state} -> {to_state}.{allowed_str}"
        )


class InvalidTransitionRequestError(ModalContextError):
    """Raised when a transition request is malformed.

    Entity type, from-state and to-state must all be non-empty strings
    after whitespace is stripped.

    Attributes:
        field_name: The offending request field.
    """

    def __init__(self, field_name: str, reason: str = "must be a non-empty string") -> None:
        self.field_name = field_name
        super().__init__(f"Invalid transition request: {field_name} {reason}")


class UnknownStateError(ModalContextError):
    """Raised when a state is not declared for a registered entity type.

    Attributes:
        entity_type: Registered entity type name.
        state: The unrecognized state name.
        known_states: States declared for the entity type.
    """

    def __init__(
        self, entity_type: str, state: str, known_states: Sequence[str]
    ) -> None:
        self.entity_type = entity_type
        self.state = state
        self.known_states = tuple(known_states)
        super().__init__(
            f"Unknown state '{state}' for entity type '{entity_type}'. "
            f"Known states: {list(self.known_states)}"
        )


class ConcurrentTransitionError(ModalContextError):
    """Raised by a storage collaborator when the entity moved underneath us.

    The coordinator does not serialize transitions for the same entity.
    Operations that persist a transition are expected to compare the
    caller's expected state or version with storage and raise this error
    on mismatch. The coordinator reports it as a ConcurrencyConflict.

    This is a recoverable error - the caller should re-read the entity
    and decide whether to retry or abort.

    Attributes:
        entity_type: Entity type being modified.
        entity_id: Entity being modified.
        expected: The state or version token the caller expected.
        actual: The state or version found in storage, if known.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected: str,
        actual: str | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual
        actual_str = f", found {actual}" if actual is not None else ""
        super().__init__(
            f"Concurrent modification detected for {entity_type} {entity_id}: "
            f"expected {expected}{actual_str}"
        )
