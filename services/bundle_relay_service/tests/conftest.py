"""
Shared test configuration for Bundle Relay Service.

Provides a DI provider mirroring the production RelayProvider with a static
credential store, an isolated Prometheus registry and a real httpx client so
backend calls can be intercepted with respx.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import httpx
import pytest
from dishka import AsyncContainer, Provider, Scope, make_async_container, provide
from dishka.integrations.fastapi import FastapiProvider
from fastapi import FastAPI
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import CollectorRegistry

from services.bundle_relay_service.admission import AdmissionPipeline
from services.bundle_relay_service.app.main import create_app
from services.bundle_relay_service.app.metrics import RelayMetrics
from services.bundle_relay_service.app.rate_limiter import RelayRateLimiter
from services.bundle_relay_service.broadcast import BroadcastCoordinator
from services.bundle_relay_service.config import Settings
from services.bundle_relay_service.implementations.credential_stores import (
    StaticCredentialStore,
)
from services.bundle_relay_service.implementations.http_client import RelayHttpClient
from services.bundle_relay_service.protocols import (
    CredentialStoreProtocol,
    ErrorReporterProtocol,
    HttpClientProtocol,
)
from services.bundle_relay_service.tests.helpers import (
    BACKEND_URL,
    VALID_API_KEY,
    RecordingErrorReporter,
)


class RelayTestProvider(Provider):
    """Test provider mirroring RelayProvider with in-process collaborators."""

    scope = Scope.APP

    def __init__(
        self,
        config: Settings,
        metrics: RelayMetrics,
        credential_store: CredentialStoreProtocol,
        error_reporter: ErrorReporterProtocol,
    ) -> None:
        super().__init__()
        self._config = config
        self._metrics = metrics
        self._credential_store = credential_store
        self._error_reporter = error_reporter

    @provide
    def get_config(self) -> Settings:
        return self._config

    @provide
    def provide_metrics(self) -> RelayMetrics:
        return self._metrics

    @provide
    def provide_registry(self) -> CollectorRegistry:
        return self._metrics.registry

    @provide
    async def get_http_client(self) -> AsyncIterator[HttpClientProtocol]:
        """Real HTTP client so respx can intercept backend calls."""
        async with httpx.AsyncClient() as client:
            yield RelayHttpClient(client)

    @provide
    def provide_credential_store(self) -> CredentialStoreProtocol:
        return self._credential_store

    @provide
    def provide_error_reporter(self) -> ErrorReporterProtocol:
        return self._error_reporter

    @provide
    def provide_rate_limiter(self, config: Settings) -> RelayRateLimiter:
        return RelayRateLimiter.from_settings(config)

    @provide
    def provide_admission_pipeline(
        self,
        rate_limiter: RelayRateLimiter,
        credential_store: CredentialStoreProtocol,
        metrics: RelayMetrics,
        error_reporter: ErrorReporterProtocol,
    ) -> AdmissionPipeline:
        return AdmissionPipeline(rate_limiter, credential_store, metrics, error_reporter)

    @provide
    def provide_broadcast_coordinator(
        self,
        config: Settings,
        http_client: HttpClientProtocol,
        metrics: RelayMetrics,
        error_reporter: ErrorReporterProtocol,
    ) -> BroadcastCoordinator:
        return BroadcastCoordinator(
            http_client,
            config.BACKEND_URLS,
            config.BACKEND_TIMEOUT_SECONDS,
            metrics,
            error_reporter,
        )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        BACKEND_URLS=[BACKEND_URL],
        BACKEND_TIMEOUT_SECONDS=2.0,
        CREDENTIAL_STORE="static",
        STATIC_API_KEYS={"searcher-1": VALID_API_KEY},
        TRACING_EXPORTER="none",
    )


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> Iterator[TracerProvider]:
    """Local SDK provider collecting finished spans in memory; never set globally."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def metrics() -> RelayMetrics:
    """RelayMetrics bound to an isolated registry."""
    return RelayMetrics(registry=CollectorRegistry())


@pytest.fixture
def error_reporter() -> RecordingErrorReporter:
    return RecordingErrorReporter()


@pytest.fixture
def credential_store(test_settings: Settings) -> CredentialStoreProtocol:
    return StaticCredentialStore(test_settings.STATIC_API_KEYS)


@pytest.fixture
async def container(
    test_settings: Settings,
    metrics: RelayMetrics,
    credential_store: CredentialStoreProtocol,
    error_reporter: RecordingErrorReporter,
) -> AsyncIterator[AsyncContainer]:
    test_container = make_async_container(
        RelayTestProvider(test_settings, metrics, credential_store, error_reporter),
        FastapiProvider(),
    )
    yield test_container
    await test_container.close()


@pytest.fixture
def relay_app(
    test_settings: Settings,
    metrics: RelayMetrics,
    container: AsyncContainer,
    tracer_provider: TracerProvider,
) -> FastAPI:
    return create_app(
        test_settings, metrics=metrics, container=container, tracer_provider=tracer_provider
    )


@pytest.fixture
async def client(relay_app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=relay_app), base_url="http://relay.test"
    ) as ac:
        yield ac

