"""
API Key Verification Tests

Verify the shared-secret check on /api routes.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from config import Config
from transport.whatsapp.security import extract_api_key, require_api_key

SECRET = "s3cret-key"


class TestRequireApiKey:
    """Test the dependency directly."""

    def _request(self, headers=None, query=None):
        request = MagicMock()
        request.headers = headers or {}
        request.query_params = query or {}
        request.url.path = "/api/info"
        return request

    @pytest.mark.asyncio
    async def test_missing_key_returns_401(self):
        with patch.object(Config, "API_KEY", SECRET):
            with pytest.raises(HTTPException) as exc_info:
                await require_api_key(self._request())

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_key_returns_403(self):
        with patch.object(Config, "API_KEY", SECRET):
            with pytest.raises(HTTPException) as exc_info:
                await require_api_key(self._request({"X-API-Key": "wrong"}))

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_unset_secret_disables_check(self):
        with patch.object(Config, "API_KEY", ""):
            await require_api_key(self._request())

    def test_key_sources(self):
        assert extract_api_key(self._request({"X-API-Key": "a"})) == "a"
        assert extract_api_key(self._request({"Authorization": "Bearer b"})) == "b"
        assert extract_api_key(self._request(query={"api_key": "c"})) == "c"
        assert extract_api_key(self._request({"Authorization": "Basic xyz"})) is None


class TestProtectedRoutes:
    """Test the check through the HTTP surface."""

    @pytest.fixture(autouse=True)
    def secret(self):
        with patch.object(Config, "API_KEY", SECRET):
            yield

    def test_no_key(self, api_client):
        response = api_client.get("/api/whatsapp/status")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_invalid_key(self, api_client):
        response = api_client.get("/api/whatsapp/status", headers={"X-API-Key": "nope"})

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Invalid API key"}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"headers": {"X-API-Key": SECRET}},
            {"headers": {"Authorization": f"Bearer {SECRET}"}},
            {"params": {"api_key": SECRET}},
        ],
    )
    def test_valid_key(self, api_client, kwargs):
        response = api_client.get("/api/whatsapp/status", **kwargs)

        assert response.status_code == 200

    def test_health_and_banner_are_public(self, api_client):
        assert api_client.get("/health").status_code == 200

        body = api_client.get("/").json()
        assert body["authentication"] == "enabled"

    def test_info_reports_auth_enabled(self, api_client):
        body = api_client.get("/api/info", headers={"X-API-Key": SECRET}).json()

        assert body["authentication"] == "enabled"
