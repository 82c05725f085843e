"""Rule store service - process-wide transition rules.

Holds the per-entity-type transition rules as an immutable RuleSnapshot.
Readers take the current snapshot reference without locking; reload()
and update_rules() build a complete new snapshot and swap the reference,
so a reader observes either the old or the new rules in full, never a
mix of both.

Writers are serialized with an asyncio.Lock so two concurrent updates
cannot lose each other's changes. The lock is never held by readers.

Usage:
    store = RuleStore(FileRuleSource(Path("transitions.yaml")))
    await store.reload()
    store.is_valid_transition("task", "pending", "in_progress")
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

from structlog import get_logger

from modal_context.application.ports.rule_source import RuleSourceProtocol
from modal_context.domain.errors.rule_source import RuleSourceError
from modal_context.domain.errors.transition import InvalidTransitionError
from modal_context.domain.models.transition_rules import (
    RuleSnapshot,
    TransitionRuleSet,
)

logger = get_logger()


class RuleStore:
    """Swap-on-write store of transition rules.

    Deny by default: an unknown entity type, an unknown from-state, or a
    target not in the allowed set is never a legal transition.

    Attributes:
        _source: Backing rule source used by reload().
        _snapshot: Current immutable snapshot (replaced, never edited).
        _write_lock: Serializes reload() and update_rules().
    """

    def __init__(
        self,
        source: RuleSourceProtocol,
        initial: RuleSnapshot | None = None,
    ) -> None:
        """Initialize the store.

        The store starts empty (everything denied) until reload() is
        awaited, unless an initial snapshot is supplied.

        Args:
            source: Backing rule source.
            initial: Optional snapshot to start from.
        """
        self._source = source
        self._snapshot = initial or RuleSnapshot.empty()
        self._write_lock = asyncio.Lock()
        self._log = logger.bind(component="rule_store", source=source.description)

    @property
    def snapshot(self) -> RuleSnapshot:
        """Current rule snapshot."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def get_rules(self, entity_type: str) -> TransitionRuleSet | None:
        """Get the rule set for an entity type.

        Returns:
            TransitionRuleSet if the entity type has rules, None otherwise.
        """
        return self._snapshot.get(entity_type)

    def get_available_transitions(
        self, entity_type: str, from_state: str
    ) -> tuple[str, ...]:
        """Get legal target states, in declaration order.

        Never raises: unknown entity types and states yield an empty tuple.
        """
        rule_set = self._snapshot.get(entity_type)
        if rule_set is None:
            return ()
        return rule_set.targets(from_state)

    def is_valid_transition(
        self, entity_type: str, from_state: str, to_state: str
    ) -> bool:
        """Check whether from_state -> to_state is legal for entity_type."""
        rule_set = self._snapshot.get(entity_type)
        return rule_set is not None and rule_set.allows(from_state, to_state)

    def require_transition(
        self, entity_type: str, from_state: str, to_state: str
    ) -> None:
        """Raise unless the transition is legal.

        For participants of distributed transactions that self-validate.

        Raises:
            InvalidTransitionError: If the transition is not permitted.
        """
        if not self.is_valid_transition(entity_type, from_state, to_state):
            raise InvalidTransitionError(
                entity_type,
                from_state,
                to_state,
                self.get_available_transitions(entity_type, from_state),
            )

    def list_entity_types(self) -> frozenset[str]:
        """Get all entity types with at least one rule."""
        return self._snapshot.entity_types()

    async def reload(self) -> RuleSnapshot:
        """Replace all rules from the backing source.

        The new snapshot is fully built and validated before the swap. If
        loading or validation fails the current rules stay in effect.

        Returns:
            The snapshot now in effect.

        Raises:
            RuleSourceError: If the source cannot be read or is malformed.
        """
        async with self._write_lock:
            try:
                raw = await self._source.load()
                snapshot = RuleSnapshot.from_source(
                    raw,
                    version=self._snapshot.version + 1,
                    source=self._source.description,
                )
            except RuleSourceError as exc:
                self._log.error(
                    "rule_reload_failed",
                    reason=exc.reason,
                    kept_version=self._snapshot.version,
                )
                raise

            self._snapshot = snapshot
            self._log.info(
                "rules_reloaded",
                version=snapshot.version,
                entity_types=sorted(snapshot.entity_types()),
            )
            return snapshot

    async def update_rules(
        self,
        entity_type: str,
        rules: Mapping[str, Sequence[str]] | TransitionRuleSet,
    ) -> RuleSnapshot:
        """Replace the rules of a single entity type.

        Other entity types are carried over unchanged. A rule set whose
        states are all terminal is kept as given (get_rules returns it) but
        is not listed by list_entity_types(). Runtime updates are not written
        back to the rule source; the next reload() discards them.

        Args:
            entity_type: Entity type to replace.
            rules: New rules in the rule source format, or a rule set.

        Returns:
            The snapshot now in effect.

        Raises:
            RuleSourceError: If the rules are malformed.
        """
        if isinstance(rules, TransitionRuleSet):
            rule_set = TransitionRuleSet.from_mapping(
                entity_type, rules.transitions, source="update_rules"
            )
        else:
            rule_set = TransitionRuleSet.from_mapping(
                entity_type, rules, source="update_rules"
            )

        async with self._write_lock:
            snapshot = self._snapshot.with_rule_set(rule_set.entity_type, rule_set)
            self._snapshot = snapshot

        self._log.info(
            "entity_rules_updated",
            entity_type=rule_set.entity_type,
            version=snapshot.version,
            has_transitions=not rule_set.is_empty(),
        )
        return snapshot
