"""
API Key Verification

SECURITY BOUNDARY - Shared-secret check for the /api surface.
No session imports. No retries.
"""

import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from config import Config

logger = logging.getLogger(__name__)

_disabled_warning_logged = False


def extract_api_key(request: Request) -> Optional[str]:
    """
    Read the caller's key.

    Accepted, in order:
    - X-API-Key header
    - Authorization: Bearer <key>
    - api_key query parameter
    """
    key = request.headers.get("X-API-Key")
    if key:
        return key

    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None

    return request.query_params.get("api_key") or None


async def require_api_key(request: Request) -> None:
    """
    FastAPI dependency guarding /api routes.

    An unset API_KEY disables the check entirely.

    Raises:
        HTTPException(401): No key supplied
        HTTPException(403): Key does not match
    """
    global _disabled_warning_logged

    expected = Config.API_KEY
    if not expected:
        if not _disabled_warning_logged:
            logger.warning("API_KEY not configured - /api endpoints are unauthenticated")
            _disabled_warning_logged = True
        return

    supplied = extract_api_key(request)
    if not supplied:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Send the X-API-Key or Authorization header",
        )

    # Constant-time compare
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        logger.warning(
            f"Rejected API key from {request.client.host if request.client else 'unknown'}",
            extra={"path": request.url.path},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
