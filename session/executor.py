"""
Safe operation executor.

Every outbound call against the messaging client goes through here: each
attempt first probes liveness, then runs the action. Failures are retried
with a short linear backoff; the last error reaches the caller.

Guarantee: no result is ever returned from an action that ran against a
session the probe did not confirm as live.
"""

import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .controller import SessionLifecycleController
from .errors import PairingFailure, RecipientNotRegistered, SessionNotReady
from .scheduler import Scheduler
from .state import SessionPhase

logger = logging.getLogger(__name__)

T = TypeVar("T")

NON_RETRYABLE: Tuple[Type[BaseException], ...] = (RecipientNotRegistered,)


async def run_with_liveness(
    action: Callable[[], Awaitable[T]],
    probe: Callable[[], Awaitable[bool]],
    *,
    max_retries: int,
    backoff_s: float,
    sleep: Callable[[float], Awaitable[None]],
    not_ready: Callable[[], Exception] = lambda: SessionNotReady("WhatsApp client is not ready"),
) -> T:
    """
    Run `action` at most `max_retries` times, probing liveness before each try.

    Args:
        action: Zero-argument coroutine function doing the real work
        probe: Coroutine function returning True when the session is live
        max_retries: Attempt ceiling (>= 1)
        backoff_s: Wait before retry i is backoff_s * i
        sleep: Awaitable sleep used between attempts
        not_ready: Builds the error raised when the probe fails

    Raises:
        SessionNotReady: The final attempt failed its probe
        Exception: Whatever the action raised on the final attempt
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    for attempt in range(max_retries):
        try:
            if not await probe():
                raise not_ready()
            return await action()
        except NON_RETRYABLE:
            raise
        except Exception as e:
            logger.info(f"Attempt {attempt + 1}/{max_retries} failed: {e}")
            if attempt == max_retries - 1:
                raise
            await sleep(backoff_s * (attempt + 1))

    raise AssertionError("unreachable")


class SafeOperationExecutor:
    """Binds run_with_liveness to a session controller and scheduler."""

    def __init__(
        self,
        controller: SessionLifecycleController,
        scheduler: Scheduler,
        max_retries: int = 3,
        backoff_s: float = 2.0,
    ):
        self.controller = controller
        self.scheduler = scheduler
        self.max_retries = max_retries
        self.backoff_s = backoff_s

    def _not_ready(self) -> SessionNotReady:
        if self.controller.state.phase == SessionPhase.FAILED:
            return PairingFailure("WhatsApp authentication failed; restart the session")
        return SessionNotReady("WhatsApp client is not ready")

    async def execute(
        self,
        action: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
    ) -> T:
        return await run_with_liveness(
            action,
            self.controller.is_actually_ready,
            max_retries=self.max_retries if max_retries is None else max_retries,
            backoff_s=self.backoff_s,
            sleep=self.scheduler.sleep,
            not_ready=self._not_ready,
        )
