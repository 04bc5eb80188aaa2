"""
WhatsApp session lifecycle.

- SessionStateStore / SessionState: process-wide session record
- transition(): pure lifecycle transition table
- SessionLifecycleController: owns the messaging client and reconnects it
  with bounded exponential backoff
- SafeOperationExecutor: liveness-probed, retried calls into the client
"""

from .errors import PairingFailure, RecipientNotRegistered, SessionNotReady
from .state import SessionPhase, SessionState, SessionStateStore
from .transitions import ReconnectPolicy, transition
from .scheduler import AsyncioScheduler, ScheduledCall, Scheduler
from .controller import SessionLifecycleController
from .executor import SafeOperationExecutor, run_with_liveness

__all__ = [
    "PairingFailure",
    "RecipientNotRegistered",
    "SessionNotReady",
    "SessionPhase",
    "SessionState",
    "SessionStateStore",
    "ReconnectPolicy",
    "transition",
    "AsyncioScheduler",
    "ScheduledCall",
    "Scheduler",
    "SessionLifecycleController",
    "SafeOperationExecutor",
    "run_with_liveness",
]
