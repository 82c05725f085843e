"""Transition API routes.

Read-only and dry-run access to the transition engine:
- Rules in effect, per entity type
- Available transitions from a state
- Transition checks without side effects
- Audit history per entity and per correlation id
- Rule reload from the configured rule source

No endpoint executes a business operation; those run in-process
through TransactionCoordinator.execute_transaction().
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from structlog import get_logger

from modal_context.api.dependencies.transitions import get_transaction_coordinator
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
from modal_context.application.services.transaction_coordinator import (
    TransactionCoordinator,
)
from modal_context.domain.errors.audit_log import TransactionLogError
from modal_context.domain.errors.rule_source import RuleSourceError

logger = get_logger()

router = APIRouter(prefix="/v1/transitions", tags=["transitions"])

ERROR_TYPE_BASE = "https://modal-context.dev/errors"

CoordinatorDep = Annotated[TransactionCoordinator, Depends(get_transaction_coordinator)]


def _problem(request: Request, status: int, slug: str, title: str, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status,
        detail={
            "type": f"{ERROR_TYPE_BASE}/{slug}",
            "title": title,
            "status": status,
            "detail": detail,
            "instance": str(request.url),
        },
    )


@router.get(
    "/rules",
    response_model=RulesOverviewResponse,
    summary="List entity types with transition rules",
)
async def get_rules_overview(coordinator: CoordinatorDep) -> RulesOverviewResponse:
    snapshot = coordinator.get_rules_snapshot()
    return RulesOverviewResponse(
        version=snapshot.version,
        loaded_at=snapshot.loaded_at,
        entity_types=sorted(snapshot.entity_types()),
    )


@router.get(
    "/rules/{entity_type}",
    response_model=RuleSetResponse,
    responses={404: {"model": TransitionErrorResponse, "description": "Unknown entity type"}},
    summary="Get the transition table of an entity type",
)
async def get_entity_rules(
    entity_type: str,
    request: Request,
    coordinator: CoordinatorDep,
) -> RuleSetResponse:
    """Get the rules of one entity type.

    Raises:
        HTTPException 404: If the entity type has no rules.
    """
    rule_set = coordinator.get_rules(entity_type.strip())
    if rule_set is None:
        raise _problem(
            request,
            404,
            "unknown-entity-type",
            "Unknown Entity Type",
            f"No transition rules for entity type '{entity_type}'",
        )
    return RuleSetResponse(
        entity_type=rule_set.entity_type,
        transitions=rule_set.to_dict(),
        states=sorted(rule_set.states()),
        terminal_states=sorted(rule_set.terminal_states()),
    )


@router.post(
    "/validate",
    response_model=TransitionCheckResponse,
    summary="Check a transition without executing it",
    description=(
        "Dry-run check against the rules in effect. Nothing is executed "
        "and nothing is written to the transaction log."
    ),
)
async def validate_transition(
    body: ValidateTransitionRequest,
    coordinator: CoordinatorDep,
) -> TransitionCheckResponse:
    check = await coordinator.validate_transition(
        body.entity_type,
        body.from_state,
        body.to_state,
        actor_id=body.actor_id,
        metadata=body.metadata,
    )
    return TransitionCheckResponse(
        entity_type=check.entity_type,
        from_state=check.from_state,
        to_state=check.to_state,
        is_valid=check.is_valid,
        reason=check.reason,
        available_transitions=list(check.available_transitions),
    )


@router.get(
    "/history/{entity_type}/{entity_id}",
    response_model=TransitionHistoryResponse,
    responses={503: {"model": TransitionErrorResponse, "description": "Audit log unavailable"}},
    summary="Get the transition history of an entity",
)
async def get_entity_history(
    entity_type: str,
    entity_id: str,
    request: Request,
    coordinator: CoordinatorDep,
    limit: Optional[int] = Query(
        default=None,
        ge=1,
        description="Maximum attempts to return (capped by configuration)",
    ),
) -> TransitionHistoryResponse:
    """Get attempts for an entity, newest first.

    Raises:
        HTTPException 503: If the transaction log cannot be queried.
    """
    try:
        attempts = await coordinator.get_entity_transactions(entity_type, entity_id, limit)
    except TransactionLogError as exc:
        logger.error("history_query_failed", entity_type=entity_type, error=str(exc))
        raise _problem(
            request, 503, "audit-log-unavailable", "Audit Log Unavailable", str(exc)
        ) from exc
    return TransitionHistoryResponse(
        entity_type=entity_type,
        entity_id=entity_id,
        attempts=[TransitionAttemptResponse.from_attempt(a) for a in attempts],
        count=len(attempts),
    )


@router.get(
    "/correlation/{transaction_id}",
    response_model=CorrelatedTransactionsResponse,
    responses={503: {"model": TransitionErrorResponse, "description": "Audit log unavailable"}},
    summary="Get every attempt sharing a correlation id",
)
async def get_correlated_transactions(
    transaction_id: str,
    request: Request,
    coordinator: CoordinatorDep,
) -> CorrelatedTransactionsResponse:
    try:
        attempts = await coordinator.get_correlated_transactions(transaction_id)
    except TransactionLogError as exc:
        logger.error("correlation_query_failed", transaction_id=transaction_id, error=str(exc))
        raise _problem(
            request, 503, "audit-log-unavailable", "Audit Log Unavailable", str(exc)
        ) from exc
    return CorrelatedTransactionsResponse(
        transaction_id=transaction_id,
        attempts=[TransitionAttemptResponse.from_attempt(a) for a in attempts],
        count=len(attempts),
    )


@router.post(
    "/rules/reload",
    response_model=RulesReloadResponse,
    responses={503: {"model": TransitionErrorResponse, "description": "Rule source unavailable"}},
    summary="Reload rules from the rule source",
    description="On failure the rules previously in effect stay active.",
)
async def reload_rules(
    request: Request,
    coordinator: CoordinatorDep,
) -> RulesReloadResponse:
    """Reload all rules.

    Raises:
        HTTPException 503: If the rule source is unreadable or malformed.
    """
    try:
        snapshot = await coordinator.reload_rules()
    except RuleSourceError as exc:
        raise _problem(
            request, 503, "rule-source-unavailable", "Rule Source Unavailable", str(exc)
        ) from exc
    return RulesReloadResponse(
        version=snapshot.version,
        loaded_at=snapshot.loaded_at,
        entity_types=sorted(snapshot.entity_types()),
    )


# Declared last so the fixed prefixes above take precedence
@router.get(
    "/{entity_type}/{from_state}/available",
    response_model=AvailableTransitionsResponse,
    summary="List legal target states",
    description="Unknown entity types and states yield an empty list.",
)
async def get_available_transitions(
    entity_type: str,
    from_state: str,
    coordinator: CoordinatorDep,
) -> AvailableTransitionsResponse:
    return AvailableTransitionsResponse(
        entity_type=entity_type,
        from_state=from_state,
        available_transitions=list(
            coordinator.get_available_transitions(entity_type, from_state)
        ),
    )
