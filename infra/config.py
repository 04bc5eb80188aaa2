"""
Infrastructure configuration system.

Environment-based messaging backend selection and session policy.
Defaults reproduce the production service: WAHA backend, 5 reconnects
with 5s→30s backoff, 3 tries per outbound operation.
"""

import os
from typing import Callable, Literal, Optional
from dataclasses import dataclass

from messaging import MessagingClient, StubMessagingClient, WAHAMessagingClient
from session import ReconnectPolicy


MessagingBackendType = Literal["waha", "stub"]


@dataclass
class InfraConfig:
    """Infrastructure configuration from environment."""

    # Messaging backend
    messaging_backend: MessagingBackendType
    waha_base_url: str
    waha_api_key: Optional[str]
    session_name: str            # fixed client id keying persisted credentials
    poll_interval_s: float
    client_timeout_s: float

    # Reconnection
    reconnect_base_delay_s: float
    reconnect_max_delay_s: float
    max_reconnect_attempts: int
    restart_delay_s: float
    destroy_timeout_s: float

    # Outbound operations
    operation_max_retries: int
    operation_retry_backoff_s: float

    @classmethod
    def from_env(cls) -> "InfraConfig":
        """Load configuration from environment variables."""
        return cls(
            # Messaging backend
            messaging_backend=os.getenv("MESSAGING_BACKEND", "waha"),  # type: ignore
            waha_base_url=os.getenv("WAHA_BASE_URL", "http://localhost:3001"),
            waha_api_key=os.getenv("WAHA_API_KEY") or None,
            session_name=os.getenv("SESSION_NAME", "gateway-client"),
            poll_interval_s=float(os.getenv("WAHA_POLL_INTERVAL_S", "2")),
            client_timeout_s=float(os.getenv("CLIENT_TIMEOUT_S", "60")),

            # Reconnection
            reconnect_base_delay_s=float(os.getenv("RECONNECT_BASE_DELAY_S", "5")),
            reconnect_max_delay_s=float(os.getenv("RECONNECT_MAX_DELAY_S", "30")),
            max_reconnect_attempts=int(os.getenv("MAX_RECONNECT_ATTEMPTS", "5")),
            restart_delay_s=float(os.getenv("RESTART_DELAY_S", "2")),
            destroy_timeout_s=float(os.getenv("DESTROY_TIMEOUT_S", "10")),

            # Outbound operations
            operation_max_retries=int(os.getenv("OPERATION_MAX_RETRIES", "3")),
            operation_retry_backoff_s=float(os.getenv("OPERATION_RETRY_BACKOFF_S", "2")),
        )

    def create_client(self) -> MessagingClient:
        """Create a messaging client instance based on configuration."""
        if self.messaging_backend == "stub":
            return StubMessagingClient()
        return WAHAMessagingClient(
            base_url=self.waha_base_url,
            session_name=self.session_name,
            api_key=self.waha_api_key,
            poll_interval_s=self.poll_interval_s,
            timeout_s=self.client_timeout_s,
        )

    def create_client_factory(self) -> Callable[[], MessagingClient]:
        """Factory handed to the controller; called once per (re)connect."""
        return self.create_client

    def reconnect_policy(self) -> ReconnectPolicy:
        return ReconnectPolicy(
            base_delay_s=self.reconnect_base_delay_s,
            max_delay_s=self.reconnect_max_delay_s,
            max_attempts=self.max_reconnect_attempts,
            restart_delay_s=self.restart_delay_s,
        )


def get_config() -> InfraConfig:
    """Get global infrastructure configuration."""
    return InfraConfig.from_env()
