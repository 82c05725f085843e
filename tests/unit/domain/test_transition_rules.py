"""Unit tests for TransitionRuleSet and RuleSnapshot."""

import pytest

from modal_context.domain.errors.rule_source import RuleSourceError
from modal_context.domain.models.transition_rules import (
    RuleSnapshot,
    TransitionRuleSet,
)


class TestTransitionRuleSetFromMapping:
    """Tests for building rule sets from the rule source format."""

    def test_keeps_declaration_order(self) -> None:
        """Test that targets keep the order they were declared in."""
        rule_set = TransitionRuleSet.from_mapping(
            "task", {"pending": ["in_progress", "cancelled", "on_hold"]}
        )

        assert rule_set.targets("pending") == ("in_progress", "cancelled", "on_hold")

    def test_removes_duplicate_targets(self) -> None:
        """Test that duplicate targets are collapsed, first one wins."""
        rule_set = TransitionRuleSet.from_mapping(
            "task", {"pending": ["in_progress", "cancelled", "in_progress"]}
        )

        assert rule_set.targets("pending") == ("in_progress", "cancelled")

    def test_strips_whitespace_and_merges_keys(self) -> None:
        """Test that names are stripped and equal states merged."""
        rule_set = TransitionRuleSet.from_mapping(
            " task ", {"pending": ["in_progress"], "pending ": [" cancelled "]}
        )

        assert rule_set.entity_type == "task"
        assert rule_set.targets("pending") == ("in_progress", "cancelled")

    @pytest.mark.parametrize(
        "rules",
        [
            {"": ["in_progress"]},
            {"pending": [""]},
            {"pending": ["   "]},
            {"pending": [None]},
            {"pending": "in_progress"},
            {"pending": 3},
        ],
    )
    def test_rejects_malformed_rules(self, rules: dict) -> None:
        """Test that empty names and non-list targets are rejected."""
        with pytest.raises(RuleSourceError):
            TransitionRuleSet.from_mapping("task", rules)

    def test_rejects_empty_entity_type(self) -> None:
        """Test that the entity type must be a non-empty string."""
        with pytest.raises(RuleSourceError, match="entity type"):
            TransitionRuleSet.from_mapping("  ", {"pending": ["in_progress"]})

    def test_transitions_are_read_only(self) -> None:
        """Test that the transitions mapping cannot be edited in place."""
        rule_set = TransitionRuleSet.from_mapping("task", {"pending": ["in_progress"]})

        with pytest.raises(TypeError):
            rule_set.transitions["pending"] = ("completed",)  # type: ignore[index]


class TestTransitionRuleSetQueries:
    """Tests for rule set lookups."""

    @pytest.fixture
    def rule_set(self) -> TransitionRuleSet:
        return TransitionRuleSet.from_mapping(
            "task",
            {
                "pending": ["in_progress", "cancelled"],
                "in_progress": ["completed"],
                "completed": [],
            },
        )

    def test_allows_listed_transition(self, rule_set: TransitionRuleSet) -> None:
        assert rule_set.allows("pending", "in_progress")

    def test_denies_unlisted_transition(self, rule_set: TransitionRuleSet) -> None:
        assert not rule_set.allows("pending", "completed")

    def test_denies_unknown_state(self, rule_set: TransitionRuleSet) -> None:
        """Test deny by default for a state absent from the rules."""
        assert rule_set.targets("archived") == ()
        assert not rule_set.allows("archived", "pending")

    def test_states_include_sources_and_targets(
        self, rule_set: TransitionRuleSet
    ) -> None:
        assert rule_set.states() == frozenset(
            {"pending", "in_progress", "cancelled", "completed"}
        )

    def test_terminal_states(self, rule_set: TransitionRuleSet) -> None:
        """Test that states without outgoing edges are terminal."""
        assert rule_set.terminal_states() == frozenset({"cancelled", "completed"})

    def test_to_dict_matches_source(self, rule_set: TransitionRuleSet) -> None:
        assert rule_set.to_dict() == {
            "pending": ["in_progress", "cancelled"],
            "in_progress": ["completed"],
            "completed": [],
        }

    def test_is_empty_when_no_transitions(self) -> None:
        rule_set = TransitionRuleSet.from_mapping("task", {"completed": []})

        assert rule_set.is_empty()


class TestRuleSnapshot:
    """Tests for RuleSnapshot."""

    def test_empty_snapshot_denies_everything(self) -> None:
        snapshot = RuleSnapshot.empty()

        assert snapshot.version == 0
        assert snapshot.get("task") is None
        assert snapshot.entity_types() == frozenset()

    def test_from_source_keeps_terminal_only_rule_sets(self) -> None:
        """Test that entity types declaring no transitions are kept but not listed."""
        snapshot = RuleSnapshot.from_source(
            {"task": {"pending": ["in_progress"]}, "note": {"draft": []}},
            version=3,
        )

        assert snapshot.version == 3
        assert snapshot.entity_types() == frozenset({"task"})
        assert snapshot.get("note").to_dict() == {"draft": []}  # type: ignore[union-attr]
        assert snapshot.to_dict()["note"] == {"draft": []}

    def test_from_source_rejects_non_mapping(self) -> None:
        with pytest.raises(RuleSourceError, match="top level"):
            RuleSnapshot.from_source(["task"], version=1)  # type: ignore[arg-type]

    def test_with_rule_set_returns_new_snapshot(self) -> None:
        """Test that replacing a rule set leaves the original untouched."""
        original = RuleSnapshot.from_source({"task": {"pending": ["in_progress"]}}, version=1)
        reminder = TransitionRuleSet.from_mapping("reminder", {"scheduled": ["triggered"]})

        updated = original.with_rule_set("reminder", reminder)

        assert updated.version == 2
        assert updated.entity_types() == frozenset({"task", "reminder"})
        assert original.entity_types() == frozenset({"task"})

    def test_with_rule_set_none_removes_entity_type(self) -> None:
        original = RuleSnapshot.from_source({"task": {"pending": ["in_progress"]}}, version=1)

        updated = original.with_rule_set("task", None)

        assert updated.get("task") is None
        assert updated.version == 2

    def test_to_dict_round_trip(self) -> None:
        rules = {
            "task": {"pending": ["in_progress"], "in_progress": ["completed"]},
            "reminder": {"scheduled": ["snoozed", "triggered"]},
        }

        assert RuleSnapshot.from_source(rules, version=1).to_dict() == rules
