"""Health check endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from modal_context.api.dependencies.transitions import get_transaction_coordinator
from modal_context.api.models.health import HealthResponse
from modal_context.application.services.transaction_coordinator import (
    TransactionCoordinator,
)

router = APIRouter(prefix="/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    coordinator: Annotated[TransactionCoordinator, Depends(get_transaction_coordinator)],
) -> HealthResponse:
    """Return health status and the rules version in effect."""
    return HealthResponse(status="healthy", rules_version=coordinator.rules_version)
