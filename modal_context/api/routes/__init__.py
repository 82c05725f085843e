"""API route modules."""

from modal_context.api.routes.health import router as health_router
from modal_context.api.routes.metrics import router as metrics_router
from modal_context.api.routes.transitions import router as transitions_router

__all__: list[str] = ["health_router", "metrics_router", "transitions_router"]
