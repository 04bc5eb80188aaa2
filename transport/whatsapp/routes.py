"""
WhatsApp Gateway API

FastAPI router for the /api surface. Handlers only read session state;
every mutation goes through the SessionLifecycleController and every
outbound call through the SafeOperationExecutor.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaError

from config import Config
from infra import SessionRuntime
from messaging import SessionClosedError
from session import PairingFailure, RecipientNotRegistered, SessionNotReady

from .normalize import ValidationError, normalize_phone_number, require_fields
from .schemas import (
    ErrorResponse,
    InfoResponse,
    QrResponse,
    SendImageRequest,
    SendResponse,
    SendTextRequest,
    StatusResponse,
)
from .security import require_api_key
from .sender import send_image, send_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["WhatsApp Gateway"], dependencies=[Depends(require_api_key)])

NOT_READY_MESSAGE = "WhatsApp client is not ready. Try again in a few seconds."
PAIRING_FAILED_MESSAGE = "WhatsApp authentication failed. Restart the session and scan a new QR code."


def get_runtime(request: Request) -> SessionRuntime:
    return request.app.state.session


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, message: str, details: Any = None) -> JSONResponse:
    body = ErrorResponse(error=message, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def _error_from_exception(exc: Exception, fallback: str) -> JSONResponse:
    """Translate a send/restart failure into the API's error body."""
    if isinstance(exc, (ValidationError, RecipientNotRegistered)):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    if isinstance(exc, PairingFailure):
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, PAIRING_FAILED_MESSAGE)
    if isinstance(exc, (SessionNotReady, SessionClosedError)):
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, NOT_READY_MESSAGE)

    logger.error(f"{fallback}: {exc}", exc_info=exc)
    details = str(exc) if Config.expose_error_details() else None
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, fallback, details)


async def _read_payload(request: Request) -> Dict[str, Any]:
    """JSON object or urlencoded form body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return dict(form.items())

    try:
        payload = json.loads(await request.body() or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _parse(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except SchemaError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationError(f"Invalid fields: {fields}")


def _require_address(raw: str) -> str:
    address = normalize_phone_number(raw)
    if address is None:
        raise ValidationError("Invalid phone number")
    return address


# ============================================================================
# SESSION STATUS
# ============================================================================

@router.get("/whatsapp/status")
async def whatsapp_status(runtime: SessionRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    """Liveness-probed connection status plus the raw session record."""
    connected = await runtime.controller.is_actually_ready()
    state = runtime.controller.state
    return StatusResponse(
        connected=connected,
        client_ready=state.ready,
        qr_code=state.qr_payload,
        reconnect_attempts=state.reconnect_attempts,
        is_initializing=state.initializing,
        state=state.phase.value,
        timestamp=_now(),
    ).model_dump(by_alias=True)


@router.get("/whatsapp/qr")
async def whatsapp_qr(runtime: SessionRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    state = runtime.controller.state
    if state.qr_payload:
        response = QrResponse(success=True, qr_code=state.qr_payload, message="Scan the QR code with WhatsApp")
    elif state.ready:
        response = QrResponse(success=True, message="Client is already connected")
    else:
        response = QrResponse(success=False, message="QR code not available. Restart the service.")
    return response.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# OUTBOUND MESSAGES
# ============================================================================

@router.post("/whatsapp/send-text")
async def whatsapp_send_text(request: Request, runtime: SessionRuntime = Depends(get_runtime)):
    try:
        payload = await _read_payload(request)
        require_fields(payload, "phoneNumber", "message")
        body: SendTextRequest = _parse(SendTextRequest, payload)
        address = _require_address(body.phone_number)

        sent = await send_text(address, body.message, runtime.controller, runtime.executor)
    except Exception as e:
        return _error_from_exception(e, "Failed to send message")

    return SendResponse(
        message_id=sent.message_id,
        message="Message sent",
        timestamp=_now(),
    ).model_dump(by_alias=True)


@router.post("/whatsapp/send-image")
async def whatsapp_send_image(request: Request, runtime: SessionRuntime = Depends(get_runtime)):
    try:
        payload = await _read_payload(request)
        require_fields(payload, "phoneNumber", "imagePath")
        body: SendImageRequest = _parse(SendImageRequest, payload)
        address = _require_address(body.phone_number)

        image_path = Path(body.image_path)
        if not image_path.is_file():
            raise ValidationError("Image file not found")

        sent = await send_image(
            address, image_path, runtime.controller, runtime.executor, caption=body.caption
        )
    except Exception as e:
        return _error_from_exception(e, "Failed to send image")

    return SendResponse(
        message_id=sent.message_id,
        message="Image sent",
        timestamp=_now(),
    ).model_dump(by_alias=True)


# ============================================================================
# SESSION CONTROL
# ============================================================================

@router.post("/whatsapp/restart")
async def whatsapp_restart(runtime: SessionRuntime = Depends(get_runtime)):
    """Tear the session down and schedule a fresh start; does not wait for it."""
    logger.info("Restart requested via API")
    try:
        await runtime.controller.restart()
    except Exception as e:
        return _error_from_exception(e, "Failed to restart client")

    return {
        "success": True,
        "message": "Client restarted. Scan the new QR code when it appears.",
    }


@router.get("/info")
async def info(runtime: SessionRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    connected = await runtime.controller.is_actually_ready()
    state = runtime.controller.state
    return InfoResponse(
        service=Config.SERVICE_NAME,
        version=Config.SERVICE_VERSION,
        whatsapp_connected=connected,
        whatsapp_ready=state.ready,
        authentication="enabled" if Config.auth_enabled() else "disabled",
        reconnect_attempts=state.reconnect_attempts,
        is_initializing=state.initializing,
        timestamp=_now(),
    ).model_dump(by_alias=True)
