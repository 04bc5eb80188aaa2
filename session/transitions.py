"""
Session lifecycle transition table.

    Idle → Initializing → AwaitingPairing → Authenticated → Ready
    Disconnected  ← AwaitingPairing | Authenticated | Ready
    Failed        ← Initializing (pairing rejected)

transition() is pure: it maps (state, event) to the next state plus a list
of effects for the controller to carry out. No timers, no I/O.
"""

from dataclasses import dataclass, replace
from typing import List, Tuple, Union

from .state import SessionPhase, SessionState


@dataclass(frozen=True)
class ReconnectPolicy:
    base_delay_s: float = 5.0
    max_delay_s: float = 30.0
    max_attempts: int = 5
    restart_delay_s: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before reconnect attempt number `attempt` (1-based)."""
        return min(self.base_delay_s * 2 ** (attempt - 1), self.max_delay_s)


# ── Events ────────────────────────────────────────────────────


@dataclass(frozen=True)
class StartRequested:
    pass


@dataclass(frozen=True)
class StartFailed:
    error: str


@dataclass(frozen=True)
class QrReceived:
    payload: str


@dataclass(frozen=True)
class Authenticated:
    pass


@dataclass(frozen=True)
class AuthFailure:
    message: str = ""


@dataclass(frozen=True)
class Ready:
    pass


@dataclass(frozen=True)
class Disconnected:
    reason: str = ""


@dataclass(frozen=True)
class RestartRequested:
    pass


SessionEvent = Union[
    StartRequested,
    StartFailed,
    QrReceived,
    Authenticated,
    AuthFailure,
    Ready,
    Disconnected,
    RestartRequested,
]


# ── Effects ───────────────────────────────────────────────────


@dataclass(frozen=True)
class CreateClient:
    pass


@dataclass(frozen=True)
class DestroyClient:
    pass


@dataclass(frozen=True)
class ScheduleStart:
    delay_s: float
    attempt: int = 0         # 0 for explicit restarts


@dataclass(frozen=True)
class ReconnectExhausted:
    attempts: int


Effect = Union[CreateClient, DestroyClient, ScheduleStart, ReconnectExhausted]


def _backoff(state: SessionState, policy: ReconnectPolicy) -> Tuple[SessionState, List[Effect]]:
    if state.reconnects_exhausted:
        return state, [ReconnectExhausted(attempts=state.reconnect_attempts)]

    attempt = state.reconnect_attempts + 1
    state = replace(state, reconnect_attempts=attempt)
    return state, [ScheduleStart(delay_s=policy.delay_for(attempt), attempt=attempt)]


def transition(
    state: SessionState,
    event: SessionEvent,
    policy: ReconnectPolicy,
) -> Tuple[SessionState, List[Effect]]:
    """Apply one lifecycle event. Returns (next_state, effects).

    Rejected credentials (FAILED) stay down until an explicit restart: a
    later StartFailed or Disconnected schedules nothing.
    """

    if isinstance(event, StartRequested):
        if state.initializing:
            return state, []
        return (
            replace(state, phase=SessionPhase.INITIALIZING, ready=False, initializing=True),
            [CreateClient()],
        )

    if isinstance(event, StartFailed):
        if state.phase == SessionPhase.FAILED:
            return replace(state, initializing=False, last_error=event.error), []

        state = replace(
            state,
            phase=SessionPhase.DISCONNECTED,
            ready=False,
            initializing=False,
            last_error=event.error,
        )
        return _backoff(state, policy)

    if isinstance(event, QrReceived):
        return (
            replace(state, phase=SessionPhase.AWAITING_PAIRING, ready=False, qr_payload=event.payload),
            [],
        )

    if isinstance(event, Authenticated):
        return replace(state, phase=SessionPhase.AUTHENTICATED, reconnect_attempts=0), []

    if isinstance(event, AuthFailure):
        return (
            replace(
                state,
                phase=SessionPhase.FAILED,
                ready=False,
                initializing=False,
                last_error=event.message or "Authentication failed",
            ),
            [],
        )

    if isinstance(event, Ready):
        return (
            replace(
                state,
                phase=SessionPhase.READY,
                ready=True,
                initializing=False,
                qr_payload="",
                reconnect_attempts=0,
                last_error=None,
            ),
            [],
        )

    if isinstance(event, Disconnected):
        if state.phase == SessionPhase.FAILED:
            return replace(state, last_disconnect_reason=event.reason), []

        state = replace(
            state,
            phase=SessionPhase.DISCONNECTED,
            ready=False,
            initializing=False,
            last_disconnect_reason=event.reason,
        )
        return _backoff(state, policy)

    if isinstance(event, RestartRequested):
        return (
            replace(
                state,
                phase=SessionPhase.IDLE,
                ready=False,
                initializing=False,
                qr_payload="",
                reconnect_attempts=0,
                last_error=None,
            ),
            [DestroyClient(), ScheduleStart(delay_s=policy.restart_delay_s)],
        )

    raise TypeError(f"Unknown session event: {event!r}")
