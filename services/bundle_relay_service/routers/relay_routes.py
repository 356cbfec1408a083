"""JSON-RPC relay route for Bundle Relay Service."""

from __future__ import annotations

from dishka.integrations.fastapi import FromDishka, inject
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from services.bundle_relay_service.admission import AdmissionPipeline, Rejected
from services.bundle_relay_service.app.errors import internal_error_response, rejection_response
from services.bundle_relay_service.broadcast import BroadcastCoordinator
from services.bundle_relay_service.logging_utils import create_service_logger
from services.bundle_relay_service.protocols import ErrorReporterProtocol

router = APIRouter()
logger = create_service_logger("bundle_relay.relay_routes")


@router.post("/{path:path}", summary="Relay a JSON-RPC bundle submission")
@inject
async def relay(
    request: Request,
    pipeline: FromDishka[AdmissionPipeline],
    coordinator: FromDishka[BroadcastCoordinator],
    error_reporter: FromDishka[ErrorReporterProtocol],
) -> Response:
    """
    Admit the request and fan it out to every backend endpoint.

    The response is a synthetic JSON-RPC success once every delivery has
    settled; backend failures are only logged.
    """
    try:
        result = await pipeline.admit(
            request.headers.get("Authorization"), await request.body()
        )
        if isinstance(result, Rejected):
            logger.info(f"Rejected request: {result.reason}", status_code=result.status_code)
            return rejection_response(result)

        logger.info(
            "Relaying request",
            method=result.method,
            request_id=result.request_id,
            gas_limit=result.gas_limit,
            backends=len(coordinator.endpoints),
        )
        await coordinator.broadcast(result.payload)

        return JSONResponse({"jsonrpc": "2.0", "id": result.request_id, "result": None})
    except Exception as e:
        logger.error(f"Error in relay handler: {e}", exc_info=True)
        error_reporter.capture_exception(e, stage="relay")
        return internal_error_response(error_reporter)
