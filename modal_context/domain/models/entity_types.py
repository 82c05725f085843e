"""Entity type registry.

Entity and state identifiers are plain strings at the rule-store level
so new entity types can be introduced purely through rules. Known entity
types additionally register a ``str`` Enum of their states; callers can
then pass enum members instead of string literals, and
``coerce_state()`` catches typos for registered types.

Unregistered entity types pass through untouched. The registry never
grants a transition; legality is decided only by the rule store.

Usage:
    from modal_context.domain.models.entity_types import (
        EntityTypeRegistry,
        TaskState,
    )

    EntityTypeRegistry.coerce_state("task", TaskState.PENDING)  # "pending"
    EntityTypeRegistry.coerce_state("task", "pendng")  # UnknownStateError
"""

from __future__ import annotations

from enum import Enum

from modal_context.domain.errors.transition import UnknownStateError


class TaskState(str, Enum):
    """Lifecycle states of a task item."""

    NOT_STARTED = "not_started"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReminderState(str, Enum):
    """Lifecycle states of a reminder."""

    SCHEDULED = "scheduled"
    SNOOZED = "snoozed"
    TRIGGERED = "triggered"
    DISMISSED = "dismissed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FocusSessionState(str, Enum):
    """Lifecycle states of a focus session."""

    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


class EntityTypeRegistry:
    """Registry of known entity types and their state enums.

    Class-level storage: one process-wide table, extended at startup
    via register().
    """

    _state_enums: dict[str, type[Enum]] = {
        "task": TaskState,
        "reminder": ReminderState,
        "focus_session": FocusSessionState,
    }

    @classmethod
    def register(cls, entity_type: str, states: type[Enum]) -> None:
        """Register (or replace) the state enum for an entity type.

        Args:
            entity_type: Entity type name as used in rules.
            states: Enum whose member values are the state names.

        Raises:
            ValueError: If the name is empty or a member value is not a
                non-empty string.
        """
        name = entity_type.strip()
        if not name:
            raise ValueError("entity_type must be a non-empty string")
        for member in states:
            if not isinstance(member.value, str) or not member.value.strip():
                raise ValueError(
                    f"{states.__name__}.{member.name} must have a non-empty string value"
                )
        cls._state_enums[name] = states

    @classmethod
    def unregister(cls, entity_type: str) -> None:
        """Remove an entity type registration (no-op if absent)."""
        cls._state_enums.pop(entity_type, None)

    @classmethod
    def is_registered(cls, entity_type: str) -> bool:
        return entity_type in cls._state_enums

    @classmethod
    def get_state_enum(cls, entity_type: str) -> type[Enum] | None:
        return cls._state_enums.get(entity_type)

    @classmethod
    def registered_types(cls) -> frozenset[str]:
        return frozenset(cls._state_enums)

    @classmethod
    def known_states(cls, entity_type: str) -> tuple[str, ...]:
        """Get declared state names for a registered type (empty otherwise)."""
        states = cls._state_enums.get(entity_type)
        if states is None:
            return ()
        return tuple(member.value for member in states)

    @classmethod
    def is_known_state(cls, entity_type: str, state: str) -> bool:
        """Check a state against a registered type (True if unregistered)."""
        known = cls.known_states(entity_type)
        return not known or state in known

    @classmethod
    def coerce_state(cls, entity_type: str, state: str | Enum) -> str:
        """Normalize a state to its string name, checking registered types.

        Args:
            entity_type: Entity type name.
            state: State name or enum member.

        Returns:
            The state's string name.

        Raises:
            UnknownStateError: If entity_type is registered and the state
                is not one of its declared states.
        """
        name = state.value if isinstance(state, Enum) else state
        known = cls.known_states(entity_type)
        if known and name not in known:
            raise UnknownStateError(entity_type, str(name), known)
        return name
