"""Compliance record domain model.

A compliance record captures one business-rule evaluation made alongside
a transition ("does this transition satisfy policy X"), as opposed to raw
state-machine legality. A non-compliant record is data, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ComplianceRecord:
    """Pass/fail evaluation of a business rule for an entity.

    Attributes:
        entity_type: Entity type name.
        entity_id: Entity identifier (stored as string).
        user_id: Acting user identifier.
        rule_id: Stable identifier of the evaluated rule.
        rule_name: Human-readable rule name.
        is_compliant: Whether the rule was satisfied.
        message: Explanation of the verdict.
        timestamp: When the evaluation was recorded (UTC).
        transaction_id: Correlation id of the related transaction, if any.
        record_id: Server-assigned id, None until appended.
    """

    entity_type: str
    entity_id: str
    user_id: str
    rule_id: str
    rule_name: str
    is_compliant: bool
    message: str
    timestamp: datetime = field(default_factory=_utc_now)
    transaction_id: str | None = None
    record_id: int | None = None

    def __post_init__(self) -> None:
        if not self.rule_id:
            raise ValueError("rule_id must be non-empty")
        object.__setattr__(self, "entity_id", str(self.entity_id))
        object.__setattr__(self, "user_id", str(self.user_id))

    def with_record_id(self, record_id: int) -> ComplianceRecord:
        """Return a copy carrying the server-assigned id."""
        return replace(self, record_id=record_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.record_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "is_compliant": self.is_compliant,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "transaction_id": self.transaction_id,
        }
