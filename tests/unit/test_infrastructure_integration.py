"""
Test suite for infrastructure integration.

Verifies:
- Configuration defaults and environment overrides
- Backend selection
- Bootstrap wires controller, executor and health together
- Health stays green whatever the session does
"""

import time
from unittest.mock import patch

import pytest

from infra import HealthChecker, InfraConfig, SessionRuntime, bootstrap_session_runtime
from messaging import StubMessagingClient, WAHAMessagingClient
from session import ReconnectPolicy


class TestInfraConfig:
    """Test infrastructure configuration."""

    def test_config_from_env_defaults(self):
        """Defaults reproduce the production service."""
        with patch.dict("os.environ", {}, clear=True):
            config = InfraConfig.from_env()

        assert config.messaging_backend == "waha"
        assert config.session_name == "gateway-client"
        assert config.max_reconnect_attempts == 5
        assert config.reconnect_base_delay_s == 5
        assert config.reconnect_max_delay_s == 30
        assert config.restart_delay_s == 2
        assert config.operation_max_retries == 3
        assert config.operation_retry_backoff_s == 2

    def test_config_env_overrides(self):
        env = {
            "MESSAGING_BACKEND": "stub",
            "MAX_RECONNECT_ATTEMPTS": "3",
            "RECONNECT_MAX_DELAY_S": "12",
            "OPERATION_MAX_RETRIES": "5",
        }
        with patch.dict("os.environ", env, clear=True):
            config = InfraConfig.from_env()

        assert config.messaging_backend == "stub"
        assert config.reconnect_policy() == ReconnectPolicy(
            base_delay_s=5, max_delay_s=12, max_attempts=3, restart_delay_s=2
        )
        assert config.operation_max_retries == 5

    def test_config_creates_waha_client(self):
        with patch.dict("os.environ", {"WAHA_BASE_URL": "http://waha:3000/", "WAHA_API_KEY": "k"}, clear=True):
            config = InfraConfig.from_env()

        client = config.create_client()

        assert isinstance(client, WAHAMessagingClient)
        assert client.base_url == "http://waha:3000"
        assert client.api_key == "k"
        assert client.session_name == "gateway-client"

    def test_config_creates_stub_client(self):
        config = InfraConfig.from_env()
        config.messaging_backend = "stub"  # type: ignore

        factory = config.create_client_factory()

        first, second = factory(), factory()
        assert isinstance(first, StubMessagingClient)
        assert first is not second


class TestBootstrap:
    """Test runtime bootstrap."""

    def test_bootstrap_wires_policy_and_retries(self, scheduler):
        config = InfraConfig.from_env()
        config.messaging_backend = "stub"  # type: ignore
        config.max_reconnect_attempts = 2
        config.operation_max_retries = 4

        runtime = bootstrap_session_runtime(config=config, scheduler=scheduler)

        assert isinstance(runtime, SessionRuntime)
        assert runtime.controller.policy.max_attempts == 2
        assert runtime.controller.state.max_reconnect_attempts == 2
        assert runtime.executor.max_retries == 4
        assert runtime.health.controller is runtime.controller
        assert "backend=stub" in repr(runtime)

    @pytest.mark.asyncio
    async def test_bootstrapped_runtime_starts(self, runtime, client_factory):
        await runtime.controller.start()

        assert runtime.controller.state.ready is True
        assert runtime.controller.client is client_factory.latest


class TestHealth:
    """Test liveness health check."""

    def test_healthy_without_session(self):
        checker = HealthChecker(start_time=time.time() - 5)

        status = checker.check_live()

        assert status.status == "healthy"
        assert status.session_phase == "unknown"
        assert status.uptime_seconds >= 5

    @pytest.mark.asyncio
    async def test_healthy_while_session_down(self, runtime, client_factory):
        await runtime.controller.start()
        client_factory.latest.simulate("disconnected", "NAVIGATION")

        data = runtime.health.to_dict(runtime.health.check_live())

        assert data["status"] == "healthy"
        assert data["session_phase"] == "disconnected"
        assert data["session_ready"] is False
