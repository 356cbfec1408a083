"""Plain-text error responses for the relay listener."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.bundle_relay_service.admission import Rejected
from services.bundle_relay_service.logging_utils import create_service_logger
from services.bundle_relay_service.protocols import ErrorReporterProtocol

logger = create_service_logger("bundle_relay.errors")

INTERNAL_ERROR_MESSAGE = "internal server error"


def rejection_response(rejection: Rejected) -> Response:
    return PlainTextResponse(
        rejection.message, status_code=rejection.status_code, headers=rejection.headers
    )


def internal_error_response(error_reporter: ErrorReporterProtocol) -> Response:
    """Generic 500 response; never exposes the underlying cause.

    Falls back to an empty 500 if the plain-text response cannot be built.
    """
    try:
        return PlainTextResponse(INTERNAL_ERROR_MESSAGE, status_code=500)
    except Exception as e:
        logger.error(f"Error building error response: {e}", exc_info=True)
        error_reporter.capture_exception(e, stage="error_response")
        return Response(status_code=500)


def register_error_handlers(app: FastAPI) -> None:
    """Render framework HTTP errors (unknown route, wrong verb) as plain text."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(
            str(exc.detail), status_code=exc.status_code, headers=exc.headers
        )
