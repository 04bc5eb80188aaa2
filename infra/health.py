"""
Health check for infrastructure probes.

GET /health is a liveness probe: it answers 200 whenever the process is up,
whatever the WhatsApp session is doing. Session details are informational.
"""

import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from session import SessionLifecycleController


@dataclass
class HealthStatus:
    """Health status response."""

    status: str  # always "healthy" while the process answers
    timestamp: str
    uptime_seconds: float
    session_phase: str
    session_ready: bool
    message: str


class HealthChecker:
    """
    Health checker for the gateway process.

    Invariant: liveness never depends on the WhatsApp session or on the
    messaging backend being reachable.
    """

    def __init__(self, start_time: float, controller: Optional[SessionLifecycleController] = None):
        self.start_time = start_time
        self.controller = controller

    def check_live(self) -> HealthStatus:
        """Liveness probe: is the process running?"""
        uptime = time.time() - self.start_time

        if self.controller is not None:
            state = self.controller.state
            phase, ready = state.phase.value, state.ready
        else:
            phase, ready = "unknown", False

        return HealthStatus(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime_seconds=uptime,
            session_phase=phase,
            session_ready=ready,
            message="Gateway process is running",
        )

    def to_dict(self, status: HealthStatus) -> Dict[str, Any]:
        """Convert HealthStatus to dict for JSON serialization."""
        return asdict(status)
