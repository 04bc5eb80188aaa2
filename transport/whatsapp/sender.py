"""
WhatsApp Outbound Sender

Builds one OutboundSendRequest per API call and delivers it through the
SafeOperationExecutor. Every attempt resolves the recipient against the
live handle before sending.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from messaging import MediaPayload, MessageContent, SentMessage
from session import RecipientNotRegistered, SafeOperationExecutor, SessionLifecycleController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundSendRequest:
    """A single outbound message: normalized address, payload, optional caption."""

    address: str
    payload: Union[MessageContent, Path]  # Path: local media, read per attempt
    caption: Optional[str] = None


async def deliver(
    request: OutboundSendRequest,
    controller: SessionLifecycleController,
    executor: SafeOperationExecutor,
) -> SentMessage:
    """
    Resolve the recipient and send, with liveness probe and retries.

    Raises:
        RecipientNotRegistered: The address has no WhatsApp account (not retried)
        SessionNotReady: The session never became live
        MessagingClientError: The last attempt's send error
    """

    async def action() -> SentMessage:
        client = controller.require_client()
        number_id = await client.get_number_id(request.address)
        if number_id is None:
            raise RecipientNotRegistered(request.address)

        payload = request.payload
        if isinstance(payload, Path):
            payload = MediaPayload.from_file_path(payload)
        return await client.send_message(number_id.serialized, payload, caption=request.caption)

    sent = await executor.execute(action)
    logger.info(
        f"Message sent to {request.address}",
        extra={"chat_id": sent.chat_id, "message_id": sent.message_id},
    )
    return sent


async def send_text(
    address: str,
    message: str,
    controller: SessionLifecycleController,
    executor: SafeOperationExecutor,
) -> SentMessage:
    return await deliver(OutboundSendRequest(address=address, payload=message), controller, executor)


async def send_image(
    address: str,
    image_path: Path,
    controller: SessionLifecycleController,
    executor: SafeOperationExecutor,
    caption: str = "",
) -> SentMessage:
    """Send a local image file; the file is read inside each attempt."""
    return await deliver(
        OutboundSendRequest(address=address, payload=image_path, caption=caption or None),
        controller,
        executor,
    )
