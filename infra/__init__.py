"""
Infrastructure module exports.

Configuration, bootstrap and health for the session runtime.
"""

from .config import InfraConfig, get_config, MessagingBackendType
from .health import HealthChecker, HealthStatus
from .bootstrap import SessionRuntime, bootstrap_session_runtime

__all__ = [
    "InfraConfig",
    "get_config",
    "MessagingBackendType",
    "HealthChecker",
    "HealthStatus",
    "SessionRuntime",
    "bootstrap_session_runtime",
]
