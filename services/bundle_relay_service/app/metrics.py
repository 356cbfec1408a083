"""Metrics definitions for the Bundle Relay Service."""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
)

GAS_LIMIT_BUCKETS = (
    22000,
    50000,
    100000,
    150000,
    200000,
    300000,
    400000,
    500000,
    750000,
    1000000,
    1250000,
    1500000,
    2000000,
    3000000,
)


class RelayMetrics:
    """A container for all Prometheus metrics for the Bundle Relay Service."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics with optional registry for test isolation.

        Isolated registries get the process, platform and GC collectors that
        the default registry already carries.
        """
        if registry is None:
            registry = REGISTRY
        else:
            ProcessCollector(registry=registry)
            PlatformCollector(registry=registry)
            GCCollector(registry=registry)
        self.registry = registry

        self.bundles_total = Counter(
            "bundles",
            "# of bundles received",
            registry=registry,
        )
        self.gas_limit = Histogram(
            "gas_limit",
            "Histogram of gas limit in bundles",
            buckets=GAS_LIMIT_BUCKETS,
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests handled by the relay listener in seconds.",
            ["method", "path", "status_code"],
            registry=registry,
        )
        self.backend_deliveries_total = Counter(
            "relay_backend_deliveries_total",
            "Total number of bundle deliveries to backend endpoints.",
            ["endpoint", "outcome"],
            registry=registry,
        )
        self.backend_delivery_duration_seconds = Histogram(
            "relay_backend_delivery_duration_seconds",
            "Duration of bundle deliveries to backend endpoints in seconds.",
            ["endpoint"],
            registry=registry,
        )
