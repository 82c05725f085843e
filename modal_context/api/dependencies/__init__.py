"""FastAPI dependency providers."""

from modal_context.api.dependencies.transitions import get_transaction_coordinator

__all__: list[str] = ["get_transaction_coordinator"]
