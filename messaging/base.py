import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Literal, Optional

from .types import MessageContent, NumberId, SentMessage

logger = logging.getLogger(__name__)

ClientEvent = Literal[
    "qr",
    "authenticated",
    "auth_failure",
    "ready",
    "disconnected",
    "message",
    "change_state",
]

# Value reported by get_state() for a usable session
STATE_CONNECTED = "CONNECTED"


class MessagingClient(ABC):
    """
    Opaque messaging client boundary.

    Session code must depend ONLY on this interface. Implementations own
    the browser-automation transport and report lifecycle changes by
    emitting events to registered handlers.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Callable[..., Any]]] = defaultdict(list)

    def on(self, event: ClientEvent, handler: Callable[..., Any]) -> None:
        """Register a handler for a lifecycle event."""
        self._handlers[event].append(handler)

    def emit(self, event: ClientEvent, *args: Any) -> None:
        """Deliver an event to every handler registered for it."""
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Handler for '{event}' event failed: {e}", exc_info=True)

    @abstractmethod
    async def initialize(self) -> None:
        """Start the underlying session. Progress is reported via events."""
        raise NotImplementedError

    @abstractmethod
    async def destroy(self) -> None:
        """Tear down the session. Outstanding calls must fail promptly."""
        raise NotImplementedError

    @abstractmethod
    async def get_number_id(self, address: str) -> Optional[NumberId]:
        """Resolve an address to a registered recipient, or None."""
        raise NotImplementedError

    @abstractmethod
    async def send_message(
        self,
        chat_id: str,
        content: MessageContent,
        caption: Optional[str] = None,
    ) -> SentMessage:
        """Send text or media to a resolved recipient."""
        raise NotImplementedError

    @abstractmethod
    async def get_state(self) -> str:
        """Connection state as reported by the backend itself."""
        raise NotImplementedError

    @abstractmethod
    def is_transport_open(self) -> bool:
        """Whether the automation transport (browser page) is still open."""
        raise NotImplementedError
