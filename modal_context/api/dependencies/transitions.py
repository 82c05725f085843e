"""Transition API dependencies.

Resolves the process-wide TransactionCoordinator from the composition
root. Tests override get_transaction_coordinator through
app.dependency_overrides.
"""

from modal_context.application.services.transaction_coordinator import (
    TransactionCoordinator,
)
from modal_context.bootstrap.coordinator import get_coordinator


async def get_transaction_coordinator() -> TransactionCoordinator:
    """Get the transaction coordinator instance."""
    return await get_coordinator()
