"""Transition attempt domain model.

A TransitionAttempt is the unit of the audit trail: one record per
coordinator invocation, whether the transition was rejected, the wrapped
operation failed, or it succeeded.

Audit Guarantees:
- Frozen dataclass; never mutated after creation
- failure_reason is present if and only if the attempt failed
- attempt_id is assigned by the transaction log on append; the stored
  record is a new instance carrying it
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def _frozen_metadata(metadata: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(metadata or {}))


@dataclass(frozen=True)
class TransitionAttempt:
    """One audited attempt to move an entity between states.

    Attributes:
        entity_type: Entity type name (e.g., "task").
        entity_id: Entity identifier (ints are stored as strings).
        from_state: State the caller claimed the entity was in.
        to_state: Requested target state.
        user_id: Acting user identifier.
        success: Whether the transition was committed.
        timestamp: When the attempt was recorded (UTC).
        username: Acting user's display name (optional).
        failure_reason: Why the attempt failed (present iff not success).
        error_code: Stable error code of a failed attempt.
        metadata: Free-form key/value context.
        duration_ms: Wall time spent on the attempt, in milliseconds.
        transaction_id: Correlation id grouping multi-step work.
        attempt_id: Server-assigned id, None until appended.
    """

    entity_type: str
    entity_id: str
    from_state: str
    to_state: str
    user_id: str
    success: bool
    timestamp: datetime = field(default_factory=_utc_now)
    username: str | None = None
    failure_reason: str | None = None
    error_code: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    duration_ms: float | None = None
    transaction_id: str | None = None
    attempt_id: int | None = None

    def __post_init__(self) -> None:
        """Validate the success/failure_reason invariant."""
        if self.success and self.failure_reason is not None:
            raise ValueError("successful attempt must not carry a failure_reason")
        if not self.success and not self.failure_reason:
            raise ValueError("failed attempt requires a failure_reason")
        if self.duration_ms is not None and self.duration_ms < 0:
            raise ValueError(f"duration_ms must be non-negative, got {self.duration_ms}")
        object.__setattr__(self, "entity_id", str(self.entity_id))
        object.__setattr__(self, "user_id", str(self.user_id))
        object.__setattr__(self, "metadata", _frozen_metadata(self.metadata))

    @classmethod
    def succeeded(
        cls,
        *,
        entity_type: str,
        entity_id: str | int,
        from_state: str,
        to_state: str,
        user_id: str | int,
        username: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        duration_ms: float | None = None,
        transaction_id: str | None = None,
    ) -> TransitionAttempt:
        """Create a successful attempt record."""
        return cls(
            entity_type=entity_type,
            entity_id=str(entity_id),
            from_state=from_state,
            to_state=to_state,
            user_id=str(user_id),
            success=True,
            username=username,
            metadata=metadata or {},
            duration_ms=duration_ms,
            transaction_id=transaction_id,
        )

    @classmethod
    def failed(
        cls,
        *,
        entity_type: str,
        entity_id: str | int,
        from_state: str,
        to_state: str,
        user_id: str | int,
        failure_reason: str,
        error_code: str,
        username: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        duration_ms: float | None = None,
        transaction_id: str | None = None,
    ) -> TransitionAttempt:
        """Create a failed attempt record."""
        return cls(
            entity_type=entity_type,
            entity_id=str(entity_id),
            from_state=from_state,
            to_state=to_state,
            user_id=str(user_id),
            success=False,
            username=username,
            failure_reason=failure_reason,
            error_code=error_code,
            metadata=metadata or {},
            duration_ms=duration_ms,
            transaction_id=transaction_id,
        )

    def with_attempt_id(self, attempt_id: int) -> TransitionAttempt:
        """Return a copy carrying the server-assigned id."""
        return replace(self, attempt_id=attempt_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.attempt_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "from_state": self.from_state,
            "to_state": self.to_state,
            "user_id": self.user_id,
            "username": self.username,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "failure_reason": self.failure_reason,
            "error_code": self.error_code,
            "metadata": dict(self.metadata),
            "duration_ms": self.duration_ms,
            "transaction_id": self.transaction_id,
        }
