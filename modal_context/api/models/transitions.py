"""Transition API request/response models.

Pydantic models for the read-only and dry-run transition endpoints.
Business operations are never executed over HTTP, so there is no
request model for execute_transaction.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from modal_context.domain.models.transition_attempt import TransitionAttempt


class RulesOverviewResponse(BaseModel):
    """Entity types with rules, plus the version of the rules in effect."""

    version: int = Field(..., description="Incremented on every reload or update")
    loaded_at: datetime = Field(..., description="When the rules were built (UTC)")
    entity_types: list[str] = Field(
        default_factory=list,
        description="Entity types with at least one rule",
        examples=[["focus_session", "reminder", "task"]],
    )


class RuleSetResponse(BaseModel):
    """Transition table for one entity type.

    Attributes:
        entity_type: Entity type name.
        transitions: from_state -> ordered list of legal target states.
        states: Every state named in the rules.
        terminal_states: States with no outgoing transitions.
    """

    entity_type: str = Field(..., examples=["task"])
    transitions: dict[str, list[str]] = Field(
        ...,
        examples=[{"pending": ["in_progress", "cancelled"]}],
    )
    states: list[str]
    terminal_states: list[str]


class AvailableTransitionsResponse(BaseModel):
    """Legal target states from a state, in declaration order."""

    entity_type: str
    from_state: str
    available_transitions: list[str]


class ValidateTransitionRequest(BaseModel):
    """Dry-run transition check.

    Blank identifiers are rejected with 422 before reaching the rules.
    """

    entity_type: str = Field(..., min_length=1, examples=["task"])
    from_state: str = Field(..., min_length=1, examples=["pending"])
    to_state: str = Field(..., min_length=1, examples=["in_progress"])
    actor_id: Optional[str] = Field(default=None, description="Acting user")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("entity_type", "from_state", "to_state")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must be a non-empty string")
        return stripped


class TransitionCheckResponse(BaseModel):
    """Verdict of a transition check."""

    entity_type: str
    from_state: str
    to_state: str
    is_valid: bool
    reason: Optional[str] = None
    available_transitions: list[str] = Field(default_factory=list)


class TransitionAttemptResponse(BaseModel):
    """One row of the transaction log."""

    id: Optional[int] = None
    entity_type: str
    entity_id: str
    from_state: str
    to_state: str
    user_id: str
    username: Optional[str] = None
    timestamp: datetime
    success: bool
    failure_reason: Optional[str] = None
    error_code: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    duration_ms: Optional[float] = None
    transaction_id: Optional[str] = None

    @classmethod
    def from_attempt(cls, attempt: TransitionAttempt) -> "TransitionAttemptResponse":
        return cls(
            id=attempt.attempt_id,
            entity_type=attempt.entity_type,
            entity_id=attempt.entity_id,
            from_state=attempt.from_state,
            to_state=attempt.to_state,
            user_id=attempt.user_id,
            username=attempt.username,
            timestamp=attempt.timestamp,
            success=attempt.success,
            failure_reason=attempt.failure_reason,
            error_code=attempt.error_code,
            metadata=dict(attempt.metadata),
            duration_ms=attempt.duration_ms,
            transaction_id=attempt.transaction_id,
        )


class TransitionHistoryResponse(BaseModel):
    """Transition history of one entity, newest first."""

    entity_type: str
    entity_id: str
    attempts: list[TransitionAttemptResponse]
    count: int


class CorrelatedTransactionsResponse(BaseModel):
    """Attempts sharing a correlation id, oldest first."""

    transaction_id: str
    attempts: list[TransitionAttemptResponse]
    count: int


class RulesReloadResponse(BaseModel):
    """Result of reloading rules from the rule source."""

    version: int
    loaded_at: datetime
    entity_types: list[str]


class TransitionErrorResponse(BaseModel):
    """RFC 7807 problem details for transition endpoints."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: Optional[str] = Field(default=None, description="Request URI")
