"""API request/response models."""

from modal_context.api.models.health import HealthResponse
from modal_context.api.models.transitions import (
    AvailableTransitionsResponse,
    CorrelatedTransactionsResponse,
    RuleSetResponse,
    RulesOverviewResponse,
    RulesReloadResponse,
    TransitionAttemptResponse,
    TransitionCheckResponse,
    TransitionErrorResponse,
    TransitionHistoryResponse,
    ValidateTransitionRequest,
)

__all__: list[str] = [
    "AvailableTransitionsResponse",
    "CorrelatedTransactionsResponse",
    "HealthResponse",
    "RuleSetResponse",
    "RulesOverviewResponse",
    "RulesReloadResponse",
    "TransitionAttemptResponse",
    "TransitionCheckResponse",
    "TransitionErrorResponse",
    "TransitionHistoryResponse",
    "ValidateTransitionRequest",
]
