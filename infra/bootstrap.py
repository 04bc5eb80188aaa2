"""
Session runtime bootstrap.

Builds the controller, executor and health checker from configuration.
One runtime per application instance; tests build their own with a stub
client and a manual scheduler.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from messaging import MessagingClient
from session import (
    AsyncioScheduler,
    SafeOperationExecutor,
    Scheduler,
    SessionLifecycleController,
)

from .config import InfraConfig, get_config
from .health import HealthChecker


@dataclass
class SessionRuntime:
    """Everything request handlers need to reach the WhatsApp session."""

    controller: SessionLifecycleController
    executor: SafeOperationExecutor
    health: HealthChecker
    config: InfraConfig

    def __repr__(self) -> str:
        return (
            f"SessionRuntime(backend={self.config.messaging_backend}, "
            f"session={self.config.session_name}, "
            f"phase={self.controller.state.phase.value})"
        )


def bootstrap_session_runtime(
    config: Optional[InfraConfig] = None,
    scheduler: Optional[Scheduler] = None,
    client_factory: Optional[Callable[[], MessagingClient]] = None,
) -> SessionRuntime:
    """
    Build a SessionRuntime.

    Args:
        config: Optional custom configuration (defaults to environment)
        scheduler: Optional scheduler (defaults to the asyncio loop)
        client_factory: Optional override of the configured client factory

    Returns:
        SessionRuntime wired but not started
    """
    config = config or get_config()
    scheduler = scheduler or AsyncioScheduler()

    controller = SessionLifecycleController(
        client_factory=client_factory or config.create_client_factory(),
        scheduler=scheduler,
        policy=config.reconnect_policy(),
        destroy_timeout_s=config.destroy_timeout_s,
    )
    executor = SafeOperationExecutor(
        controller,
        scheduler,
        max_retries=config.operation_max_retries,
        backoff_s=config.operation_retry_backoff_s,
    )
    health = HealthChecker(start_time=time.time(), controller=controller)

    return SessionRuntime(controller=controller, executor=executor, health=health, config=config)
