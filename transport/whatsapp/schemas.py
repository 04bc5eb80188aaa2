"""
WhatsApp Transport Layer - Pydantic Schemas

PURE DATA MODELS - NO LOGIC
Request and response contracts of the /api surface. Field names on the
wire are camelCase; Python attributes are snake_case.
"""

from typing import Optional

from pydantic import BaseModel, Field


# ============================================================================
# REQUESTS
# ============================================================================

class SendTextRequest(BaseModel):
    """Body of POST /api/whatsapp/send-text."""

    phone_number: str = Field(..., alias="phoneNumber", description="Recipient, any common format")
    message: str = Field(..., description="Text body")

    class Config:
        populate_by_name = True


class SendImageRequest(BaseModel):
    """Body of POST /api/whatsapp/send-image."""

    phone_number: str = Field(..., alias="phoneNumber")
    image_path: str = Field(..., alias="imagePath", description="Path on the gateway host")
    caption: str = Field("", description="Optional caption")

    class Config:
        populate_by_name = True


# ============================================================================
# RESPONSES
# ============================================================================

class SendResponse(BaseModel):
    """Successful send."""

    success: bool = True
    message_id: str = Field(..., alias="messageId")
    message: str
    timestamp: str

    class Config:
        populate_by_name = True


class StatusResponse(BaseModel):
    """GET /api/whatsapp/status."""

    connected: bool = Field(..., description="Liveness probe result")
    client_ready: bool = Field(..., alias="clientReady", description="Last reported ready flag")
    qr_code: str = Field("", alias="qrCode")
    reconnect_attempts: int = Field(0, alias="reconnectAttempts")
    is_initializing: bool = Field(False, alias="isInitializing")
    state: str = Field(..., description="Session phase")
    timestamp: str

    class Config:
        populate_by_name = True


class QrResponse(BaseModel):
    """GET /api/whatsapp/qr."""

    success: bool
    qr_code: Optional[str] = Field(None, alias="qrCode")
    message: str

    class Config:
        populate_by_name = True


class InfoResponse(BaseModel):
    """GET /api/info."""

    service: str
    version: str
    status: str = "running"
    whatsapp_connected: bool
    whatsapp_ready: bool
    authentication: str
    reconnect_attempts: int = Field(0, alias="reconnectAttempts")
    is_initializing: bool = Field(False, alias="isInitializing")
    timestamp: str

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Every non-2xx body."""

    success: bool = False
    error: str
    details: Optional[str] = None
