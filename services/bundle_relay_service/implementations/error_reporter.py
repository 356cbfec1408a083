"""Error reporting through OpenTelemetry span events."""

from __future__ import annotations

from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from services.bundle_relay_service.protocols import ErrorReporterProtocol


class OpenTelemetryErrorReporter(ErrorReporterProtocol):
    """Records exceptions on the active span so the tracing backend picks them up.

    Without a configured tracer provider the active span is non-recording and
    reporting is a no-op.
    """

    def capture_exception(self, exc: BaseException, **context: Any) -> None:
        span = trace.get_current_span()
        attributes = {f"relay.{key}": str(value) for key, value in context.items()}
        span.record_exception(exc, attributes=attributes)
        span.set_status(Status(StatusCode.ERROR, str(exc)))
