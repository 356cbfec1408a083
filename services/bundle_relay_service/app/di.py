from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from dishka import Provider, Scope, provide
from prometheus_client import CollectorRegistry

from services.bundle_relay_service.admission import AdmissionPipeline
from services.bundle_relay_service.app.metrics import RelayMetrics
from services.bundle_relay_service.app.rate_limiter import RelayRateLimiter
from services.bundle_relay_service.broadcast import BroadcastCoordinator
from services.bundle_relay_service.config import Settings
from services.bundle_relay_service.implementations.credential_stores import (
    RedisCredentialStore,
    StaticCredentialStore,
)
from services.bundle_relay_service.implementations.error_reporter import (
    OpenTelemetryErrorReporter,
)
from services.bundle_relay_service.implementations.http_client import RelayHttpClient
from services.bundle_relay_service.protocols import (
    CredentialStoreProtocol,
    ErrorReporterProtocol,
    HttpClientProtocol,
)


class RelayProvider(Provider):
    """APP-scoped dependencies of the relay, built once at process start."""

    scope = Scope.APP

    def __init__(self, config: Settings, metrics: RelayMetrics) -> None:
        super().__init__()
        self._config = config
        self._metrics = metrics

    @provide
    def get_config(self) -> Settings:
        return self._config

    @provide
    def provide_metrics(self) -> RelayMetrics:
        return self._metrics

    @provide
    def provide_registry(self, metrics: RelayMetrics) -> CollectorRegistry:
        return metrics.registry

    @provide
    async def get_http_client(self, config: Settings) -> AsyncIterator[HttpClientProtocol]:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(
                config.BACKEND_TIMEOUT_SECONDS,
                connect=config.HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS,
            )
        ) as httpx_client:
            yield RelayHttpClient(httpx_client)

    @provide
    async def get_credential_store(
        self, config: Settings
    ) -> AsyncIterator[CredentialStoreProtocol]:
        if config.CREDENTIAL_STORE == "static":
            yield StaticCredentialStore(config.STATIC_API_KEYS)
            return
        store = RedisCredentialStore.from_url(config.REDIS_URL, config.CREDENTIAL_KEY_PREFIX)
        yield store
        await store.aclose()

    @provide
    def provide_error_reporter(self) -> ErrorReporterProtocol:
        return OpenTelemetryErrorReporter()

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
