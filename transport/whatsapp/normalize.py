"""
WhatsApp Input Normalization

PURE CONVERSION - NO I/O

Turns raw user input (phone numbers, request bodies) into values the
messaging client accepts:
- phone numbers: digits plus an optional leading "+", 10-15 chars,
  suffixed with the chat domain "@c.us"
- request bodies: required fields present and non-empty
"""

import re
from typing import Any, Mapping, Optional


PHONE_SUFFIX = "@c.us"
MIN_PHONE_LENGTH = 10
MAX_PHONE_LENGTH = 15

_STRIP_PATTERN = re.compile(r"[^\d+]")


class ValidationError(Exception):
    """Missing or malformed request input (HTTP 400)."""
    pass


def normalize_phone_number(raw: Any) -> Optional[str]:
    """
    Canonicalize a phone number into a chat address.

    "+1 (234) 567-8901" -> "+12345678901@c.us"

    Args:
        raw: Phone number as typed by the caller; may already carry
            the "@c.us" suffix

    Returns:
        Normalized address, or None if the cleaned number is not
        between 10 and 15 characters long
    """
    if not isinstance(raw, str):
        return None

    value = raw.strip()
    if value.endswith(PHONE_SUFFIX):
        value = value[: -len(PHONE_SUFFIX)]

    cleaned = _STRIP_PATTERN.sub("", value)
    # Only a leading "+" survives
    if cleaned.startswith("+"):
        cleaned = "+" + cleaned[1:].replace("+", "")
    else:
        cleaned = cleaned.replace("+", "")

    if len(cleaned) < MIN_PHONE_LENGTH or len(cleaned) > MAX_PHONE_LENGTH:
        return None

    return f"{cleaned}{PHONE_SUFFIX}"


def require_fields(payload: Mapping[str, Any], *names: str) -> None:
    """
    Check that every named field is present and non-empty.

    Raises:
        ValidationError: listing the required fields, e.g.
            "phoneNumber and message are required"
    """
    missing = [name for name in names if not payload.get(name)]
    if missing:
        raise ValidationError(f"{' and '.join(names)} are required")
