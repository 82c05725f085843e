"""FastAPI application entry point for the Modal Context transition engine."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from structlog import get_logger

from modal_context import __version__
from modal_context.api.middleware.logging_middleware import LoggingMiddleware
from modal_context.api.routes.health import router as health_router
from modal_context.api.routes.metrics import router as metrics_router
from modal_context.api.routes.transitions import router as transitions_router
from modal_context.bootstrap.coordinator import get_coordinator
from modal_context.bootstrap.database import close_database_engine
from modal_context.bootstrap.logging import configure_logging

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging and load the rules before serving requests."""
    configure_logging()
    coordinator = await get_coordinator()
    logger.info("service_started", rules_version=coordinator.rules_version)
    yield
    await close_database_engine()
    logger.info("service_stopped")


app = FastAPI(
    title="Modal Context API",
    description="Entity state transition rules, validation and audit trail",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(transitions_router)
