"""
Concurrent fan-out of admitted requests to the backend endpoints.

Each admitted payload is POSTed once to every configured endpoint. All
deliveries run concurrently and the coordinator returns only after every one
of them has completed, failed or timed out. Delivery failures are logged and
counted; they never reach the client.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from services.bundle_relay_service.app.metrics import RelayMetrics
from services.bundle_relay_service.logging_utils import create_service_logger
from services.bundle_relay_service.protocols import ErrorReporterProtocol, HttpClientProtocol

logger = create_service_logger("bundle_relay.broadcast")

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class BroadcastOutcome:
    """Result of delivering one payload to one backend endpoint."""

    endpoint: str
    status_code: int | None = None
    body: str | None = None
    error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def outcome_label(self) -> str:
        if self.ok:
            return "success"
        if self.status_code is not None:
            return "http_error"
        if self.error == "timeout":
            return "timeout"
        return "transport_error"


class BroadcastCoordinator:
    def __init__(
        self,
        http_client: HttpClientProtocol,
        endpoints: Sequence[str],
        timeout_seconds: float,
        metrics: RelayMetrics,
        error_reporter: ErrorReporterProtocol,
    ) -> None:
        if not endpoints:
            raise ValueError("at least one backend endpoint is required")
        self._http_client = http_client
        self._endpoints = tuple(endpoints)
        self._timeout_seconds = timeout_seconds
        self._metrics = metrics
        self._error_reporter = error_reporter

    @property
    def endpoints(self) -> tuple[str, ...]:
        return self._endpoints

    async def broadcast(self, payload: dict[str, Any]) -> list[BroadcastOutcome]:
        """Deliver ``payload`` to every endpoint and wait for all deliveries to settle."""
        outcomes = await asyncio.gather(
            *(self._deliver(endpoint, payload) for endpoint in self._endpoints)
        )
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if failed:
            logger.warning(
                f"Bundle delivery failed for {failed} of {len(outcomes)} backend endpoints"
            )
        return list(outcomes)

    async def _deliver(self, endpoint: str, payload: dict[str, Any]) -> BroadcastOutcome:
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._http_client.post(
                    endpoint,
                    json=payload,
                    headers=JSON_HEADERS,
                    timeout=self._timeout_seconds,
                ),
                timeout=self._timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            outcome = BroadcastOutcome(
                endpoint=endpoint,
                error="timeout",
                elapsed_seconds=time.perf_counter() - started,
            )
            logger.error(
                f"Timed out calling backend {endpoint} after {self._timeout_seconds}s"
            )
        except httpx.HTTPError as e:
            outcome = BroadcastOutcome(
                endpoint=endpoint,
                error=f"{type(e).__name__}: {e}",
                elapsed_seconds=time.perf_counter() - started,
            )
            logger.error(f"Transport error calling backend {endpoint}: {e}")
        except Exception as e:
            outcome = BroadcastOutcome(
                endpoint=endpoint,
                error=f"{type(e).__name__}: {e}",
                elapsed_seconds=time.perf_counter() - started,
            )
            logger.error(f"Error calling backend {endpoint}: {e}")
            self._error_reporter.capture_exception(e, endpoint=endpoint)
        else:
            outcome = BroadcastOutcome(
                endpoint=endpoint,
                status_code=response.status_code,
                body=None if response.is_success else response.text,
                elapsed_seconds=time.perf_counter() - started,
            )
            if not outcome.ok:
                logger.error(
                    f"http error calling backend {endpoint} with status "
                    f"{outcome.status_code} and text: {outcome.body}"
                )

        self._metrics.backend_deliveries_total.labels(
            endpoint=endpoint, outcome=outcome.outcome_label
        ).inc()
        self._metrics.backend_delivery_duration_seconds.labels(endpoint=endpoint).observe(
            outcome.elapsed_seconds
        )
        return outcome
