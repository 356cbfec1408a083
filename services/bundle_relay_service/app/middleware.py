"""Middleware for Bundle Relay Service."""

from __future__ import annotations

import time
from uuid import UUID, uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer
from structlog.contextvars import bound_contextvars

from services.bundle_relay_service.app.metrics import RelayMetrics
from services.bundle_relay_service.logging_utils import create_service_logger

logger = create_service_logger("bundle_relay.middleware")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure every request has a correlation ID as UUID."""

    async def dispatch(self, request: Request, call_next):
        """Extract or generate correlation ID, bind it to the log context and echo it."""
        x_correlation_id = request.headers.get("X-Correlation-ID")
        if x_correlation_id:
            try:
                correlation_id = UUID(x_correlation_id)
            except ValueError:
                logger.warning(
                    f"Invalid correlation ID format: {x_correlation_id}, generating new one"
                )
                correlation_id = uuid4()
        else:
            correlation_id = uuid4()

        request.state.correlation_id = correlation_id

        with bound_contextvars(correlation_id=str(correlation_id)):
            response = await call_next(request)

        response.headers["X-Correlation-ID"] = str(correlation_id)
        return response


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Records request duration per method, path and status, and writes the access log."""

    def __init__(self, app: ASGIApp, metrics: RelayMetrics) -> None:
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - started
            route = request.scope.get("route")
            path = getattr(route, "path", "unmatched")
            self.metrics.http_request_duration_seconds.labels(
                method=request.method,
                path=path,
                status_code=str(status_code),
            ).observe(duration)
            logger.info(
                f"{request.client.host if request.client else '-'} "
                f'"{request.method} {request.url.path}" {status_code} '
                f"{duration * 1000:.1f}ms"
            )


class TracingMiddleware(BaseHTTPMiddleware):
    """Opens a server span per request so errors can be recorded against it."""

    def __init__(self, app: ASGIApp, tracer: Tracer) -> None:
        super().__init__(app)
        self.tracer = tracer

    async def dispatch(self, request: Request, call_next):
        with self.tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            kind=SpanKind.SERVER,
            attributes={
                "http.request.method": request.method,
                "url.path": request.url.path,
                "correlation_id": str(getattr(request.state, "correlation_id", "")),
            },
        ) as span:
            response = await call_next(request)

            route = request.scope.get("route")
            if route is not None:
                span.update_name(f"{request.method} {route.path}")
                span.set_attribute("http.route", route.path)
            span.set_attribute("http.response.status_code", response.status_code)
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR))
            return response
