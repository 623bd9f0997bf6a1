"""
API Routes for itinerary submission and result delivery.
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from typing import Optional
import logging

from ..errors import ConfigurationError, SubmissionError, TripAssistError
from ..models.preferences import TravelPreferences
from ..services.delivery import DeliveryService, get_delivery_service
from ..services.sessions import validate_session_id


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["itinerary"])


def _error_response(status_code: int, error: TripAssistError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error.message, "code": error.code}
    )


def _invalid_session_id(session_id: Optional[str]) -> Optional[str]:
    """Error message for a missing or malformed id, None if it is usable."""
    if not session_id:
        return "Session ID is required"
    if not validate_session_id(session_id):
        return "Session ID is malformed"
    return None


# Endpoints

@router.post("/submit")
async def submit(
    preferences: TravelPreferences,
    delivery: DeliveryService = Depends(get_delivery_service)
):
    """Send preferences to the engine. Returns a session id, or the itinerary in sync mode."""
    try:
        outcome = await delivery.submit(preferences)
    except ConfigurationError as e:
        logger.error(f"Configuration error on submit: {e.message}")
        return _error_response(500, e)
    except SubmissionError as e:
        return _error_response(502, e)

    return outcome.to_response()


@router.get("/result")
async def get_result(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    delivery: DeliveryService = Depends(get_delivery_service)
):
    """Poll the state of a session."""
    problem = _invalid_session_id(session_id)
    if problem:
        return JSONResponse(status_code=400, content={"error": problem})

    return delivery.read(session_id).to_response()


@router.get("/stream")
async def stream_result(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    delivery: DeliveryService = Depends(get_delivery_service)
):
    """Hold an event stream open until the session's result is pushed."""
    problem = _invalid_session_id(session_id)
    if problem:
        return JSONResponse(status_code=400, content={"error": problem})

    return StreamingResponse(
        delivery.stream(session_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )


@router.post("/webhook")
async def receive_callback(
    request: Request,
    session_id: Optional[str] = Query(None, alias="sessionId"),
    delivery: DeliveryService = Depends(get_delivery_service)
):
    """
    Callback receiver for the engine.
    Acknowledges receipt whenever a session id is present, whatever the payload holds.
    """
    problem = _invalid_session_id(session_id)
    if problem:
        logger.error(f"[Webhook] Rejected callback: {problem}")
        return JSONResponse(status_code=400, content={"success": False, "error": problem})

    logger.info(f"[Webhook] Received POST for sessionId: {session_id}")

    try:
        body = await request.json()
    except ValueError:
        logger.error(f"[Webhook] Body for session {session_id} is not valid JSON")
        body = None

    try:
        parsed = delivery.handle_callback(session_id, body)
    except Exception:
        logger.exception(f"[Webhook] Could not record result for session {session_id}")
        return {"success": False, "error": "Failed to record the callback result."}

    if parsed.ok:
        return {"success": True, "message": "Itinerary received and processed."}
    return {"success": True, "message": "Error notification received and processed."}
