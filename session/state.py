"""
Session state record.

One SessionState snapshot describes the messaging session at a point in
time. Snapshots are immutable; the SessionStateStore swaps them whole, so
every field change is atomic on the event loop.

Invariants:
- ready and initializing are never both true
- reconnect_attempts never exceeds max_reconnect_attempts
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional


class SessionPhase(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    AWAITING_PAIRING = "awaiting_pairing"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionState:
    phase: SessionPhase = SessionPhase.IDLE
    ready: bool = False
    initializing: bool = False
    qr_payload: str = ""
    reconnect_attempts: int = 0
    max_reconnect_attempts: int = 5
    last_disconnect_reason: Optional[str] = None
    last_error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.ready and self.initializing:
            raise ValueError("Session cannot be ready while initializing")
        if not 0 <= self.reconnect_attempts <= self.max_reconnect_attempts:
            raise ValueError(
                f"reconnect_attempts={self.reconnect_attempts} outside "
                f"[0, {self.max_reconnect_attempts}]"
            )

    @property
    def reconnects_exhausted(self) -> bool:
        return self.reconnect_attempts >= self.max_reconnect_attempts

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["phase"] = self.phase.value
        return data


class SessionStateStore:
    """
    Holder of the current SessionState.

    Request handlers only call snapshot(). apply() is reserved for the
    session controller, which is the single writer.
    """

    def __init__(self, initial: Optional[SessionState] = None):
        self._state = initial or SessionState()

    def snapshot(self) -> SessionState:
        return self._state

    def apply(self, state: SessionState) -> SessionState:
        previous, self._state = self._state, state
        return previous
