"""Rule source adapters.

- StaticRuleSource: rules held in process (tests, embedded defaults)
- FileRuleSource: rules read from a YAML or JSON file on every load

File format (YAML shown; JSON is accepted as well since YAML is a
superset of it). The top level is either the rule mapping itself or a
mapping with a ``transitions`` key:

    transitions:
      task:
        pending: [in_progress, cancelled]
        in_progress: [completed, blocked]
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from structlog import get_logger

from modal_context.application.ports.rule_source import RuleSourceProtocol
from modal_context.domain.errors.rule_source import RuleSourceError
from modal_context.domain.models.transition_rules import RuleSourceMapping

logger = get_logger(__name__)

# Built-in rules used when no rule file is configured
DEFAULT_TRANSITION_RULES: dict[str, dict[str, list[str]]] = {
    "task": {
        "not_started": ["pending", "in_progress", "cancelled"],
        "pending": ["in_progress", "on_hold", "cancelled"],
        "in_progress": ["completed", "blocked", "on_hold", "cancelled"],
        "on_hold": ["in_progress", "cancelled"],
        "blocked": ["in_progress", "cancelled"],
        "completed": [],
        "cancelled": [],
    },
    "reminder": {
        "scheduled": ["triggered", "snoozed", "cancelled"],
        "snoozed": ["triggered", "cancelled"],
        "triggered": ["snoozed", "dismissed", "completed"],
        "dismissed": [],
        "completed": [],
        "cancelled": [],
    },
    "focus_session": {
        "in_progress": ["paused", "completed", "interrupted"],
        "paused": ["in_progress", "completed", "interrupted"],
        "completed": [],
        "interrupted": [],
    },
}


def _unwrap(data: Any, source: str) -> RuleSourceMapping:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise RuleSourceError(source, "top level must be a mapping")
    if "transitions" in data and isinstance(data["transitions"], Mapping):
        return data["transitions"]
    return data


class StaticRuleSource(RuleSourceProtocol):
    """Rule source backed by an in-process mapping.

    The mapping is deep-copied on construction and on every load, so
    later mutation by the caller cannot leak into loaded rules.
    """

    def __init__(
        self,
        rules: RuleSourceMapping | None = None,
        description: str = "static",
    ) -> None:
        self._rules = copy.deepcopy(dict(rules if rules is not None else DEFAULT_TRANSITION_RULES))
        self._description = description

    @property
    def description(self) -> str:
        return self._description

    async def load(self) -> RuleSourceMapping:
        return copy.deepcopy(self._rules)

    def replace(self, rules: RuleSourceMapping) -> None:
        """Swap the backing mapping (takes effect on the next load)."""
        self._rules = copy.deepcopy(dict(rules))


class FileRuleSource(RuleSourceProtocol):
    """Rule source reading a YAML/JSON file on every load.

    The file is read in a worker thread so a reload does not block the
    event loop.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def description(self) -> str:
        return str(self._path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> RuleSourceMapping:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise RuleSourceError(self.description, f"cannot read file: {exc}") from exc
        except yaml.YAMLError as exc:
            raise RuleSourceError(self.description, f"cannot parse file: {exc}") from exc
        return _unwrap(data, self.description)

    async def load(self) -> RuleSourceMapping:
        rules = await asyncio.to_thread(self._read)
        logger.debug("rule_file_read", path=self.description, entity_types=len(rules))
        return rules
