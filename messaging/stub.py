import itertools
from typing import Any, Iterable, List, Optional

from .base import STATE_CONNECTED, MessagingClient
from .errors import SessionClosedError, TransientSendFailure
from .types import MessageContent, NumberId, SentMessage


class StubMessagingClient(MessagingClient):
    """
    Deterministic in-memory messaging client for testing and CI.

    By default initialize() pairs instantly (authenticated + ready) and
    every address is registered. Failures can be scripted per call.
    """

    _ids = itertools.count(1)

    def __init__(
        self,
        registered: Optional[Iterable[str]] = None,
        auto_ready: bool = True,
        qr_payload: Optional[str] = None,
        fail_initialize: Optional[Exception] = None,
        send_failures: int = 0,
    ):
        super().__init__()
        self.registered = set(registered) if registered is not None else None
        self.auto_ready = auto_ready
        self.qr_payload = qr_payload
        self.fail_initialize = fail_initialize
        self.send_failures = send_failures

        self.state = "OPENING"
        self.transport_open = False
        self.destroyed = False
        self.initialize_calls = 0
        self.destroy_calls = 0
        self.sent: List[dict] = []

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self.fail_initialize is not None:
            raise self.fail_initialize

        self.transport_open = True
        if self.qr_payload:
            self.emit("qr", self.qr_payload)
        if self.auto_ready:
            self.simulate("authenticated")
            self.simulate("ready")

    async def destroy(self) -> None:
        self.destroy_calls += 1
        self.destroyed = True
        self.transport_open = False
        self.state = "DESTROYED"

    def simulate(self, event: str, *args: Any) -> None:
        """Emit a lifecycle event as the real backend would."""
        if event == "ready":
            self.state = STATE_CONNECTED
        elif event in ("disconnected", "auth_failure"):
            self.state = "UNPAIRED"
        self.emit(event, *args)  # type: ignore[arg-type]

    def _ensure_open(self) -> None:
        if self.destroyed:
            raise SessionClosedError("Session closed")

    async def get_number_id(self, address: str) -> Optional[NumberId]:
        self._ensure_open()
        if self.registered is not None and address not in self.registered:
            return None
        return NumberId(serialized=address, user=address.split("@", 1)[0])

    async def send_message(
        self,
        chat_id: str,
        content: MessageContent,
        caption: Optional[str] = None,
    ) -> SentMessage:
        self._ensure_open()
        if self.send_failures > 0:
            self.send_failures -= 1
            raise TransientSendFailure("Stub send failure")

        message_id = f"stub-{next(self._ids)}"
        self.sent.append({
            "id": message_id,
            "chat_id": chat_id,
            "content": content,
            "caption": caption,
        })
        return SentMessage(id=message_id, chat_id=chat_id)

    async def get_state(self) -> str:
        self._ensure_open()
        return self.state

    def is_transport_open(self) -> bool:
        return self.transport_open and not self.destroyed
