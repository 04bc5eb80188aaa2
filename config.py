"""
Configuration management for the WhatsApp session gateway.

Loads environment variables from .env file and provides typed access to configuration.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)


class Config:
    """HTTP surface configuration."""

    SERVICE_NAME = os.getenv("SERVICE_NAME", "WhatsApp Session Gateway")
    SERVICE_VERSION = "1.0.0"

    # Shared secret for /api routes. Empty disables the check.
    API_KEY = os.getenv("API_KEY", "")

    PORT = int(os.getenv("PORT", "3000"))

    # Environment ("production" hides error details in responses)
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def auth_enabled(cls) -> bool:
        return bool(cls.API_KEY)

    @classmethod
    def expose_error_details(cls) -> bool:
        return cls.ENVIRONMENT != "production"


if __name__ == "__main__":
    # Test configuration loading
    print("Configuration loaded:")
    print(f"  Service: {Config.SERVICE_NAME} v{Config.SERVICE_VERSION}")
    print(f"  API Key: {'✓ Set' if Config.API_KEY else '✗ Not set (auth disabled)'}")
    print(f"  Port: {Config.PORT}")
    print(f"  Environment: {Config.ENVIRONMENT}")
