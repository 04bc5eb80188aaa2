"""
Messaging client boundary.

The session layer talks to the WhatsApp session only through the
MessagingClient interface, so the browser-automation backend stays opaque.

Supported backends:
- StubMessagingClient: Deterministic in-memory client (default for CI/tests)
- WAHAMessagingClient: WAHA sidecar running whatsapp-web.js

Example usage:
    from messaging import StubMessagingClient

    client = StubMessagingClient()
    client.on("ready", lambda: print("ready"))
    await client.initialize()
"""

from .types import MediaPayload, MessageContent, NumberId, SentMessage, extract_message_id
from .errors import MessagingClientError, SessionClosedError, TransientSendFailure
from .base import STATE_CONNECTED, ClientEvent, MessagingClient
from .stub import StubMessagingClient
from .waha import WAHAMessagingClient

__all__ = [
    "MediaPayload",
    "MessageContent",
    "NumberId",
    "SentMessage",
    "extract_message_id",
    "MessagingClientError",
    "SessionClosedError",
    "TransientSendFailure",
    "STATE_CONNECTED",
    "ClientEvent",
    "MessagingClient",
    "StubMessagingClient",
    "WAHAMessagingClient",
]
