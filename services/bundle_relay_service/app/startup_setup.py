"""Startup setup for Bundle Relay Service."""

from __future__ import annotations

from fastapi import FastAPI
from opentelemetry.sdk.trace import TracerProvider

from services.bundle_relay_service.app.middleware import TracingMiddleware
from services.bundle_relay_service.config import Settings
from services.bundle_relay_service.logging_utils import create_service_logger
from services.bundle_relay_service.tracing import TRACER_NAME, init_tracing

logger = create_service_logger("bundle_relay.startup")


def setup_tracing_and_middleware(
    app: FastAPI, config: Settings, tracer_provider: TracerProvider | None = None
) -> TracerProvider | None:
    """Setup distributed tracing and the per-request span middleware.

    A failure here is logged and the relay starts without tracing.
    """
    if tracer_provider is None and not config.ENABLE_TRACING:
        logger.info("Distributed tracing disabled")
        return None
    try:
        if tracer_provider is None:
            logger.info("Initializing distributed tracing...")
            tracer_provider = init_tracing(config)

        app.state.tracer_provider = tracer_provider
        app.add_middleware(TracingMiddleware, tracer=tracer_provider.get_tracer(TRACER_NAME))
        logger.info("Tracing middleware added successfully")
        return tracer_provider
    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}", exc_info=True)
        return None
