from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider, setup_dishka
from fastapi import FastAPI
from opentelemetry.sdk.trace import TracerProvider

from services.bundle_relay_service.app.di import RelayProvider
from services.bundle_relay_service.app.errors import register_error_handlers
from services.bundle_relay_service.app.metrics import RelayMetrics
from services.bundle_relay_service.app.middleware import (
    CorrelationIDMiddleware,
    RequestMetricsMiddleware,
)
from services.bundle_relay_service.app.startup_setup import setup_tracing_and_middleware
from services.bundle_relay_service.config import Settings, settings
from services.bundle_relay_service.logging_utils import create_service_logger
from services.bundle_relay_service.routers import health_routes, relay_routes

logger = create_service_logger("bundle_relay.main")


def create_di_container(config: Settings, metrics: RelayMetrics) -> AsyncContainer:
    """Create and configure the DI container."""
    try:
        container = make_async_container(RelayProvider(config, metrics), FastapiProvider())
        logger.info("DI container created successfully")
        return container
    except Exception as e:
        logger.critical(f"Failed to create DI container: {e}", exc_info=True)
        raise


def create_app(
    config: Settings | None = None,
    *,
    metrics: RelayMetrics | None = None,
    container: AsyncContainer | None = None,
    tracer_provider: TracerProvider | None = None,
) -> FastAPI:
    """Build the relay application.

    ``metrics`` must be the same instance the container provides so that the
    request middleware and the admission pipeline write to one registry.
    Without ``tracer_provider`` one is built from ``config`` when tracing is
    enabled.
    """
    config = config or settings
    metrics = metrics or RelayMetrics()
    container = container or create_di_container(config, metrics)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            f"relay listening at {config.HTTP_PORT}",
            backends=config.BACKEND_URLS,
        )
        yield
        await container.close()
        provider = getattr(_app.state, "tracer_provider", None)
        if provider is not None:
            provider.shutdown()
        logger.info("Bundle Relay Service shutdown completed")

    app = FastAPI(
        title=config.SERVICE_NAME,
        version="1.0.0",
        description="Authenticated eth_sendBundle relay with concurrent backend fan-out",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    register_error_handlers(app)

    app.add_middleware(RequestMetricsMiddleware, metrics=metrics)
    setup_tracing_and_middleware(app, config, tracer_provider)
    # Added last so it runs first and the correlation ID reaches every log line
    app.add_middleware(CorrelationIDMiddleware)

    app.include_router(relay_routes.router)

    setup_dishka(container, app)
    app.state.di_container = container

    return app


def create_metrics_app(container: AsyncContainer) -> FastAPI:
    """Build the metrics-only application served on its own port."""
    app = FastAPI(
        title="bundle-relay-metrics",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    register_error_handlers(app)
    app.include_router(health_routes.router)
    setup_dishka(container, app)
    return app
