import json
import os
import sys
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config.settings import Settings
from health import HTTP_OK, HTTP_SERVICE_UNAVAILABLE, HealthChecker, get_app_version
from models.slack import BotIdentity


@pytest.fixture
def settings():
    with patch.dict(os.environ, {"SLACK_CHANNEL_ID": "C12345"}):
        return Settings(_env_file=None)


def make_checker(settings, configured: bool = True, user_id: str | None = "U0BOTUSER"):
    backend_client = MagicMock()
    backend_client.is_configured = configured
    slack_service = MagicMock()
    slack_service.identity = BotIdentity(user_id=user_id)
    return HealthChecker(settings, backend_client, slack_service)


class TestHealthEndpoints:
    """Tests for liveness and readiness handlers"""

    def test_routes_registered(self, settings):
        app = make_checker(settings).create_app()

        paths = {route.resource.canonical for route in app.router.routes()}
        assert {"/api/health", "/api/ready"} <= paths

    @pytest.mark.asyncio
    async def test_health_check(self, settings):
        response = await make_checker(settings).health_check(MagicMock())

        body = json.loads(response.body)
        assert response.status == HTTP_OK
        assert body["status"] == "healthy"
        assert body["environment"] == settings.environment
        assert "uptime_seconds" in body

    @pytest.mark.asyncio
    async def test_ready(self, settings):
        response = await make_checker(settings).readiness_check(MagicMock())

        body = json.loads(response.body)
        assert response.status == HTTP_OK
        assert body["status"] == "ready"
        assert body["checks"]["monitored_channel"] == "C12345"

    @pytest.mark.asyncio
    async def test_not_ready_without_backend_token(self, settings):
        response = await make_checker(settings, configured=False).readiness_check(
            MagicMock()
        )

        assert response.status == HTTP_SERVICE_UNAVAILABLE
        assert json.loads(response.body)["checks"]["backend_configured"] is False

    @pytest.mark.asyncio
    async def test_not_ready_without_identity(self, settings):
        response = await make_checker(settings, user_id=None).readiness_check(
            MagicMock()
        )

        assert response.status == HTTP_SERVICE_UNAVAILABLE


def test_app_version_read_from_pyproject():
    assert get_app_version() == "0.1.0"
