"""
Session Lifecycle Controller

Owns the single messaging client handle, feeds its lifecycle events through
the transition table and carries out the resulting effects:

  start()               create a fresh client (no-op while initializing)
  restart()             destroy the handle, zero counters, start after a delay
  shutdown()            release the handle for good
  is_actually_ready()   ready flag + open transport + backend says CONNECTED

Every handle gets a generation number. Events and failures coming from a
superseded handle are dropped, so destroying an old client can never
trigger a second reconnect cycle.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from messaging import STATE_CONNECTED, MessagingClient, SessionClosedError

from .scheduler import ScheduledCall, Scheduler
from .state import SessionState, SessionStateStore
from .transitions import (
    AuthFailure,
    Authenticated,
    CreateClient,
    DestroyClient,
    Disconnected,
    Effect,
    QrReceived,
    Ready,
    ReconnectExhausted,
    ReconnectPolicy,
    RestartRequested,
    ScheduleStart,
    SessionEvent,
    StartFailed,
    StartRequested,
    transition,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], MessagingClient]


class SessionLifecycleController:
    def __init__(
        self,
        client_factory: ClientFactory,
        scheduler: Scheduler,
        policy: Optional[ReconnectPolicy] = None,
        store: Optional[SessionStateStore] = None,
        destroy_timeout_s: float = 10.0,
    ):
        self.policy = policy or ReconnectPolicy()
        self.store = store or SessionStateStore(
            SessionState(max_reconnect_attempts=self.policy.max_attempts)
        )
        store_max = self.store.snapshot().max_reconnect_attempts
        if store_max != self.policy.max_attempts:
            raise ValueError(
                f"Session store allows {store_max} reconnect attempts "
                f"but the policy allows {self.policy.max_attempts}"
            )
        self._client_factory = client_factory
        self._scheduler = scheduler
        self._destroy_timeout_s = destroy_timeout_s

        self._client: Optional[MessagingClient] = None
        self._generation = 0
        self._pending_start: Optional[ScheduledCall] = None
        self._stopped = False

    @property
    def state(self) -> SessionState:
        return self.store.snapshot()

    @property
    def client(self) -> Optional[MessagingClient]:
        return self._client

    def require_client(self) -> MessagingClient:
        """Current handle, or SessionClosedError if there is none."""
        if self._client is None:
            raise SessionClosedError("Session closed")
        return self._client

    # ── Transitions ───────────────────────────────────────────

    def _dispatch(self, event: SessionEvent) -> List[Effect]:
        state, effects = transition(self.state, event, self.policy)
        self.store.apply(state)

        for effect in effects:
            if isinstance(effect, ScheduleStart):
                self._schedule_start(effect)
            elif isinstance(effect, ReconnectExhausted):
                logger.error(
                    f"Maximum reconnect attempts reached ({effect.attempts}); "
                    f"waiting for an explicit restart"
                )
        return effects

    def _schedule_start(self, effect: ScheduleStart) -> None:
        if self._stopped:
            return
        self._cancel_pending_start()

        if effect.attempt:
            logger.info(
                f"Reconnecting ({effect.attempt}/{self.policy.max_attempts}) "
                f"in {effect.delay_s:g}s"
            )
        else:
            logger.info(f"Session start scheduled in {effect.delay_s:g}s")
        self._pending_start = self._scheduler.call_later(effect.delay_s, self._run_scheduled_start)

    def _cancel_pending_start(self) -> None:
        if self._pending_start is not None:
            self._pending_start.cancel()
            self._pending_start = None

    async def _run_scheduled_start(self) -> None:
        self._pending_start = None
        await self.start()

    # ── Lifecycle operations ──────────────────────────────────

    async def start(self) -> None:
        """Create and initialize a new client unless one is already initializing."""
        if self._stopped:
            logger.warning("Session controller is shut down; ignoring start")
            return

        effects = self._dispatch(StartRequested())
        if not any(isinstance(e, CreateClient) for e in effects):
            logger.info("Client initialization already in progress")
            return

        self._cancel_pending_start()
        self._generation += 1
        generation = self._generation

        try:
            await self._release_client()
            if generation != self._generation:
                return
            client = self._client_factory()
            self._wire(client, generation)
            self._client = client
            logger.info("Initializing messaging client...")
            await client.initialize()
        except Exception as e:
            if generation != self._generation:
                logger.warning(f"Superseded client failed during initialization: {e}")
                return
            logger.error(f"Messaging client initialization failed: {e}", exc_info=True)
            self._dispatch(StartFailed(error=str(e)))

    async def restart(self) -> None:
        """
        Force a fresh session regardless of the current state.

        Always schedules a new start, even when destroying the current
        handle fails.
        """
        logger.info("Restarting messaging session...")
        self._cancel_pending_start()
        self._generation += 1

        effects = self._dispatch(RestartRequested())
        if any(isinstance(e, DestroyClient) for e in effects):
            await self._release_client()

    async def shutdown(self) -> None:
        """Release the client on application shutdown. No further starts."""
        self._stopped = True
        self._cancel_pending_start()
        self._generation += 1
        await self._release_client()
        logger.info("Messaging session shut down")

    async def _release_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await asyncio.wait_for(client.destroy(), timeout=self._destroy_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(f"Destroying client timed out after {self._destroy_timeout_s:g}s")
        except Exception as e:
            logger.warning(f"Error destroying previous client: {e}")

    async def is_actually_ready(self) -> bool:
        """
        Liveness probe.

        The ready event can be stale relative to a silently dropped
        transport, so the backend is asked directly as well.
        """
        client = self._client
        if client is None or not self.state.ready:
            return False

        try:
            if not client.is_transport_open():
                logger.warning("Automation transport is closed")
                return False
            return await client.get_state() == STATE_CONNECTED
        except Exception as e:
            logger.warning(f"Error checking client state: {e}")
            return False

    # ── Client events ─────────────────────────────────────────

    def _wire(self, client: MessagingClient, generation: int) -> None:
        def guarded(handler: Callable[..., None]) -> Callable[..., None]:
            def _handler(*args: Any) -> None:
                if generation != self._generation or self._stopped:
                    logger.debug(f"Ignoring {handler.__name__} from superseded client")
                    return
                handler(*args)
            return _handler

        client.on("qr", guarded(self._on_qr))
        client.on("authenticated", guarded(self._on_authenticated))
        client.on("auth_failure", guarded(self._on_auth_failure))
        client.on("ready", guarded(self._on_ready))
        client.on("disconnected", guarded(self._on_disconnected))
        client.on("message", guarded(self._on_message))
        client.on("change_state", guarded(self._on_change_state))

    def _on_qr(self, qr: str) -> None:
        logger.info("QR code generated. Scan it with WhatsApp to pair this session")
        self._dispatch(QrReceived(payload=qr))

    def _on_authenticated(self, *_: Any) -> None:
        logger.info("Client authenticated")
        self._dispatch(Authenticated())

    def _on_auth_failure(self, message: Any = "") -> None:
        logger.error(f"Authentication failed: {message}")
        self._dispatch(AuthFailure(message=str(message or "")))

    def _on_ready(self, *_: Any) -> None:
        logger.info("WhatsApp client ready")
        self._dispatch(Ready())

    def _on_disconnected(self, reason: Any = "") -> None:
        logger.warning(f"Client disconnected: {reason}")
        self._dispatch(Disconnected(reason=str(reason or "")))

    def _on_message(self, message: Any) -> None:
        sender = message.get("from") if isinstance(message, dict) else getattr(message, "from_", None)
        logger.info(f"Incoming message from {sender}")

    def _on_change_state(self, state: Any) -> None:
        logger.debug(f"Client state changed: {state}")
