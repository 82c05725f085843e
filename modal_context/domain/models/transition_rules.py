"""Transition rule domain models.

A TransitionRuleSet is the table of transitions one entity type may make.
A RuleSnapshot bundles the rule sets of every entity type that is in
effect at a given moment. Both are immutable: the rule store replaces a
whole snapshot rather than editing one in place, so readers always see a
complete rule set.

Rule source format:
    {"task": {"pending": ["in_progress", "cancelled"],
              "in_progress": ["completed", "blocked"]}}

Deny by default:
- An unknown entity type has no legal transitions
- A state absent from the mapping has no legal transitions
- A target not listed for a state is illegal
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

from modal_context.domain.errors.rule_source import RuleSourceError

RuleSourceMapping = Mapping[str, Mapping[str, Sequence[str]]]


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def _require_name(value: object, what: str, source: str) -> str:
    """Validate that a rule name is a non-empty string and strip it."""
    if not isinstance(value, str) or not value.strip():
        raise RuleSourceError(source, f"{what} must be a non-empty string, got {value!r}")
    return value.strip()


@dataclass(frozen=True)
class TransitionRuleSet:
    """Legal transitions for a single entity type.

    Target states keep the order they were declared in, with duplicates
    removed, so available transitions are reported deterministically.

    Attributes:
        entity_type: Entity type these rules apply to.
        transitions: Read-only mapping from_state -> ordered target states.
    """

    entity_type: str
    transitions: Mapping[str, tuple[str, ...]]

    @classmethod
    def from_mapping(
        cls,
        entity_type: str,
        rules: Mapping[str, Sequence[str]],
        source: str = "rules",
    ) -> TransitionRuleSet:
        """Build a rule set from the rule source format.

        Args:
            entity_type: Entity type name.
            rules: Mapping from_state -> iterable of to_state names.
            source: Description of where the rules came from (for errors).

        Returns:
            A validated, immutable TransitionRuleSet.

        Raises:
            RuleSourceError: If any name is empty or the shape is wrong.
        """
        entity_type = _require_name(entity_type, "entity type", source)
        if not isinstance(rules, Mapping):
            raise RuleSourceError(
                source, f"rules for '{entity_type}' must be a mapping of state -> targets"
            )

        transitions: dict[str, tuple[str, ...]] = {}
        for from_state, targets in rules.items():
            from_name = _require_name(from_state, f"{entity_type} state", source)
            if isinstance(targets, (str, bytes)) or not isinstance(targets, Sequence):
                raise RuleSourceError(
                    source,
                    f"targets of {entity_type}.{from_name} must be a list of states",
                )
            # States that differ only by surrounding whitespace are merged
            ordered = dict.fromkeys(transitions.get(from_name, ()))
            for target in targets:
                ordered[_require_name(target, f"{entity_type}.{from_name} target", source)] = None
            transitions[from_name] = tuple(ordered)

        return cls(entity_type=entity_type, transitions=MappingProxyType(transitions))

    def targets(self, from_state: str) -> tuple[str, ...]:
        """Get the legal target states from a state (empty if none)."""
        return self.transitions.get(from_state, ())

    def allows(self, from_state: str, to_state: str) -> bool:
        """Check whether from_state -> to_state is listed."""
        return to_state in self.targets(from_state)

    def states(self) -> frozenset[str]:
        """Get every state named in the rule set, as source or target."""
        names: set[str] = set(self.transitions)
        for targets in self.transitions.values():
            names.update(targets)
        return frozenset(names)

    def terminal_states(self) -> frozenset[str]:
        """Get states with no outgoing transitions."""
        return frozenset(s for s in self.states() if not self.targets(s))

    def is_empty(self) -> bool:
        """Check whether the rule set declares no transitions at all."""
        return not any(self.transitions.values())

    def to_dict(self) -> dict[str, list[str]]:
        """Convert to the rule source format."""
        return {state: list(targets) for state, targets in self.transitions.items()}


@dataclass(frozen=True)
class RuleSnapshot:
    """All rule sets in effect at one moment.

    Attributes:
        rule_sets: Read-only mapping entity_type -> TransitionRuleSet.
        version: Incremented on every reload or update.
        loaded_at: When this snapshot was built (UTC).
    """

    rule_sets: Mapping[str, TransitionRuleSet]
    version: int = 0
    loaded_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def empty(cls) -> RuleSnapshot:
        """Create a snapshot with no rules (everything denied)."""
        return cls(rule_sets=MappingProxyType({}), version=0)

    @classmethod
    def from_source(
        cls, rules: RuleSourceMapping, version: int, source: str = "rules"
    ) -> RuleSnapshot:
        """Build a complete snapshot from the rule source format.

        Every validated rule set is kept, including ones whose states are
        all terminal; entity_types() only reports types with at least one
        rule.

        Raises:
            RuleSourceError: If the source is not a mapping or any rule
                set is malformed.
        """
        if not isinstance(rules, Mapping):
            raise RuleSourceError(source, "top level must be a mapping of entity types")
        rule_sets: dict[str, TransitionRuleSet] = {}
        for entity_type, entity_rules in rules.items():
            rule_set = TransitionRuleSet.from_mapping(entity_type, entity_rules, source)
            rule_sets[rule_set.entity_type] = rule_set
        return cls(rule_sets=MappingProxyType(rule_sets), version=version)

    def with_rule_set(
        self, entity_type: str, rule_set: TransitionRuleSet | None
    ) -> RuleSnapshot:
        """Return a copy with one entity type replaced (or removed if None)."""
        rule_sets = dict(self.rule_sets)
        if rule_set is None:
            rule_sets.pop(entity_type, None)
        else:
            rule_sets[entity_type] = rule_set
        return RuleSnapshot(rule_sets=MappingProxyType(rule_sets), version=self.version + 1)

    def get(self, entity_type: str) -> TransitionRuleSet | None:
        """Get the rule set for an entity type, None if unknown."""
        return self.rule_sets.get(entity_type)

    def entity_types(self) -> frozenset[str]:
        """Get the entity types with at least one rule."""
        return frozenset(
            name for name, rule_set in self.rule_sets.items() if not rule_set.is_empty()
        )

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        """Convert to the rule source format."""
        return {name: rs.to_dict() for name, rs in self.rule_sets.items()}
