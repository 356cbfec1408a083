"""
OpenTelemetry tracing setup for Bundle Relay Service.

Installs an SDK tracer provider so request spans are recorded and exported.
Exceptions captured by the error reporter become events on those spans.
"""

from __future__ import annotations

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)

from services.bundle_relay_service.config import Settings
from services.bundle_relay_service.logging_utils import create_service_logger

logger = create_service_logger("bundle_relay.tracing")

TRACER_NAME = "bundle_relay_service"


def build_span_exporter(config: Settings) -> SpanExporter | None:
    if config.TRACING_EXPORTER == "otlp":
        return OTLPSpanExporter(endpoint=config.OTLP_TRACES_ENDPOINT)
    if config.TRACING_EXPORTER == "console":
        return ConsoleSpanExporter()
    return None


def init_tracing(config: Settings, *, set_global: bool = True) -> TracerProvider:
    """Create the tracer provider for this process.

    With ``TRACING_EXPORTER=none`` spans are still recorded, just not exported.
    """
    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: config.SERVICE_NAME,
                "deployment.environment": config.ENVIRONMENT.value,
            }
        )
    )
    exporter = build_span_exporter(config)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    if set_global:
        trace.set_tracer_provider(provider)

    logger.info(f"Tracing initialized with {config.TRACING_EXPORTER} exporter")
    return provider
