"""Health and metrics routes served on the metrics listener."""

from __future__ import annotations

from dishka.integrations.fastapi import FromDishka, inject
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from services.bundle_relay_service.logging_utils import create_service_logger

router = APIRouter(tags=["Health"])
logger = create_service_logger("bundle_relay.routers.health")


@router.get("/healthz")
async def health_check() -> dict[str, str]:
    return {"service": "bundle_relay_service", "status": "healthy"}


@router.get("/metrics", response_class=PlainTextResponse)
@inject
async def metrics(registry: FromDishka[CollectorRegistry]) -> Response:
    """Prometheus metrics endpoint."""
    try:
        metrics_data = generate_latest(registry)
        return Response(content=metrics_data, media_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(f"Error generating metrics: {e}", exc_info=True)
        return PlainTextResponse(content="Error generating metrics", status_code=500)
