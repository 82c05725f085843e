"""Transition validator - request normalization over the rule store.

The validator trims and checks the request identifiers, then asks the
rule store. The decision is purely rule based: the actor id and the
metadata bag accepted by validate_transition() only flow into the
structured log line, for callers that go on to record a compliance check.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from structlog import get_logger

from modal_context.application.services.rule_store import RuleStore
from modal_context.domain.errors.transition import InvalidTransitionRequestError
from modal_context.domain.models.entity_types import EntityTypeRegistry
from modal_context.domain.models.transition_check import TransitionCheck

logger = get_logger()

StateLike = str | Enum


def _normalize_name(value: object, field_name: str) -> str:
    if isinstance(value, Enum):
        value = value.value
    if not isinstance(value, str):
        raise InvalidTransitionRequestError(field_name)
    stripped = value.strip()
    if not stripped:
        raise InvalidTransitionRequestError(field_name)
    return stripped


class TransitionValidator:
    """Thin façade over the RuleStore with request-shape checks."""

    def __init__(self, rule_store: RuleStore) -> None:
        self._rule_store = rule_store

    def normalize(
        self,
        entity_type: StateLike,
        from_state: StateLike,
        to_state: StateLike,
    ) -> tuple[str, str, str]:
        """Strip and check the identifiers of a transition request.

        Enum members are replaced with their values. State names that a
        registered entity type does not declare are logged as likely
        typos but still go to the rules, which stay authoritative.

        Returns:
            (entity_type, from_state, to_state) as non-empty strings.

        Raises:
            InvalidTransitionRequestError: If any value is empty or not a string.
        """
        entity = _normalize_name(entity_type, "entity_type")
        source = _normalize_name(from_state, "from_state")
        target = _normalize_name(to_state, "to_state")

        for state in (source, target):
            if not EntityTypeRegistry.is_known_state(entity, state):
                logger.warning(
                    "unregistered_state_name",
                    entity_type=entity,
                    state=state,
                    known_states=list(EntityTypeRegistry.known_states(entity)),
                )
        return entity, source, target

    def is_valid(
        self,
        entity_type: StateLike,
        from_state: StateLike,
        to_state: StateLike,
    ) -> bool:
        """Check a transition; malformed requests are simply invalid."""
        try:
            entity, source, target = self.normalize(entity_type, from_state, to_state)
        except InvalidTransitionRequestError:
            return False
        return self._rule_store.is_valid_transition(entity, source, target)

    def check(
        self,
        entity_type: StateLike,
        from_state: StateLike,
        to_state: StateLike,
    ) -> TransitionCheck:
        """Check a transition and explain the verdict.

        Raises:
            InvalidTransitionRequestError: If the request is malformed.
        """
        entity, source, target = self.normalize(entity_type, from_state, to_state)
        available = self._rule_store.get_available_transitions(entity, source)
        if target in available:
            return TransitionCheck(
                entity_type=entity,
                from_state=source,
                to_state=target,
                is_valid=True,
                available_transitions=available,
            )

        if self._rule_store.get_rules(entity) is None:
            reason = f"invalid transition: no rules for entity type '{entity}'"
        elif not available:
            reason = f"invalid transition: state '{source}' has no outgoing transitions"
        else:
            reason = f"invalid transition: {source} -> {target}"
        return TransitionCheck(
            entity_type=entity,
            from_state=source,
            to_state=target,
            is_valid=False,
            reason=reason,
            available_transitions=available,
        )

    async def validate_transition(
        self,
        entity_type: StateLike,
        from_state: StateLike,
        to_state: StateLike,
        actor_id: str | int | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> TransitionCheck:
        """Check a transition with audit context.

        Args:
            entity_type: Entity type name or enum.
            from_state: Current state.
            to_state: Requested state.
            actor_id: Acting user (logged, not used for the decision).
            metadata: Extra audit context (logged, not used for the decision).

        Returns:
            TransitionCheck with the verdict and available transitions.

        Raises:
            InvalidTransitionRequestError: If the request is malformed.
        """
        check = self.check(entity_type, from_state, to_state)
        logger.debug(
            "transition_checked",
            entity_type=check.entity_type,
            from_state=check.from_state,
            to_state=check.to_state,
            is_valid=check.is_valid,
            actor_id=str(actor_id) if actor_id is not None else None,
            metadata=dict(metadata or {}),
        )
        return check

    def available_transitions(
        self, entity_type: StateLike, from_state: StateLike
    ) -> tuple[str, ...]:
        """Get legal targets; malformed input yields an empty tuple."""
        try:
            entity = _normalize_name(entity_type, "entity_type")
            source = _normalize_name(from_state, "from_state")
        except InvalidTransitionRequestError:
            return ()
        return self._rule_store.get_available_transitions(entity, source)
