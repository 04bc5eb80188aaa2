"""WhatsApp Transport Layer - Module Exports"""

from .normalize import (
    PHONE_SUFFIX,
    ValidationError,
    normalize_phone_number,
    require_fields,
)
from .schemas import (
    ErrorResponse,
    InfoResponse,
    QrResponse,
    SendImageRequest,
    SendResponse,
    SendTextRequest,
    StatusResponse,
)
from .security import extract_api_key, require_api_key
from .sender import OutboundSendRequest, deliver, send_image, send_text
from .routes import router

__all__ = [
    # Schemas
    "SendTextRequest",
    "SendImageRequest",
    "SendResponse",
    "StatusResponse",
    "QrResponse",
    "InfoResponse",
    "ErrorResponse",
    # Normalization
    "normalize_phone_number",
    "require_fields",
    "ValidationError",
    "PHONE_SUFFIX",
    # Security
    "require_api_key",
    "extract_api_key",
    # Sender
    "OutboundSendRequest",
    "deliver",
    "send_text",
    "send_image",
    # Router
    "router",
]
