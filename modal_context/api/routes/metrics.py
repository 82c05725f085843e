"""Metrics endpoint for Prometheus scraping."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from modal_context.infrastructure.monitoring.transition_metrics import (
    get_transition_metrics_collector,
)

router = APIRouter(prefix="/v1", tags=["metrics"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Transition engine metrics in Prometheus exposition format.",
    response_class=Response,
    responses={
        200: {
            "description": "Metrics in Prometheus format",
            "content": {"text/plain": {}},
        }
    },
)
async def get_metrics() -> Response:
    registry = get_transition_metrics_collector().get_registry()
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
