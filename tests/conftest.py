"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import List

import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from messaging import StubMessagingClient  # noqa: E402
from session import (  # noqa: E402
    ReconnectPolicy,
    SafeOperationExecutor,
    Scheduler,
    SessionLifecycleController,
)


class ManualCall:
    """A scheduled callback that only fires when the test says so."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Deterministic scheduler: records timers and sleeps, never waits."""

    def __init__(self):
        self.calls: List[ManualCall] = []
        self.sleeps: List[float] = []

    def call_later(self, delay, callback):
        call = ManualCall(delay, callback)
        self.calls.append(call)
        return call

    async def sleep(self, delay):
        self.sleeps.append(delay)

    @property
    def pending(self) -> List[ManualCall]:
        return [c for c in self.calls if not c.cancelled and not c.fired]

    async def run_pending(self):
        """Fire every call pending right now (not ones scheduled while firing)."""
        for call in self.pending:
            call.fired = True
            await call.callback()


class ClientFactory:
    """Builds stub clients and remembers every one it built."""

    def __init__(self, **stub_kwargs):
        self.stub_kwargs = stub_kwargs
        self.clients: List[StubMessagingClient] = []

    def __call__(self) -> StubMessagingClient:
        client = StubMessagingClient(**self.stub_kwargs)
        self.clients.append(client)
        return client

    @property
    def latest(self) -> StubMessagingClient:
        return self.clients[-1]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def client_factory():
    return ClientFactory()


@pytest.fixture
def make_client_factory():
    """Build a ClientFactory with custom stub options."""
    return ClientFactory


@pytest.fixture
def controller(client_factory, scheduler):
    return SessionLifecycleController(
        client_factory=client_factory,
        scheduler=scheduler,
        policy=ReconnectPolicy(),
    )


@pytest.fixture
def executor(controller, scheduler):
    return SafeOperationExecutor(controller, scheduler, max_retries=3, backoff_s=2.0)


@pytest.fixture
def runtime(scheduler, client_factory):
    """Session runtime on the stub client and the manual scheduler."""
    from infra import InfraConfig, bootstrap_session_runtime

    config = InfraConfig.from_env()
    config.messaging_backend = "stub"
    return bootstrap_session_runtime(
        config=config,
        scheduler=scheduler,
        client_factory=client_factory,
    )


@pytest.fixture
def api_client(runtime):
    """TestClient without lifespan; tests start the session themselves."""
    from fastapi.testclient import TestClient

    from main import create_app

    return TestClient(create_app(runtime, autostart=False))
