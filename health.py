import logging
import tomllib
from datetime import UTC, datetime
from pathlib import Path

from aiohttp import web
from aiohttp.web_runner import AppRunner, TCPSite

from config.settings import Settings

logger = logging.getLogger(__name__)

# Constants
HTTP_OK = 200
HTTP_SERVICE_UNAVAILABLE = 503


def get_app_version() -> str:
    """Get application version from pyproject.toml"""
    try:
        pyproject_path = Path(__file__).parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject_data = tomllib.load(f)
        return pyproject_data["project"]["version"]
    except Exception as e:
        logger.warning(f"Failed to read version from pyproject.toml: {e}")
        return "unknown"


class HealthChecker:
    """Health check service for monitoring bot status"""

    def __init__(self, settings: Settings, backend_client=None, slack_service=None):
        self.settings = settings
        self.backend_client = backend_client
        self.slack_service = slack_service
        self.start_time = datetime.now(UTC)
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/health", self.health_check)
        app.router.add_get("/api/ready", self.readiness_check)
        return app

    async def start_server(self, port: int = 8080) -> None:
        """Start health check HTTP server"""
        self.runner = AppRunner(self.create_app())
        await self.runner.setup()
        self.site = TCPSite(self.runner, "0.0.0.0", port)
        await self.site.start()

    async def stop_server(self) -> None:
        """Stop health check HTTP server"""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            self.site = None

    async def health_check(self, request: web.Request) -> web.Response:
        """Liveness: the process is up"""
        uptime = (datetime.now(UTC) - self.start_time).total_seconds()
        return web.json_response(
            {
                "status": "healthy",
                "version": get_app_version(),
                "environment": self.settings.environment,
                "uptime_seconds": round(uptime, 1),
            },
            status=HTTP_OK,
        )

    async def readiness_check(self, request: web.Request) -> web.Response:
        """Readiness: the bot knows who it is and can reach a configured backend"""
        checks = {
            "backend_configured": bool(
                self.backend_client and self.backend_client.is_configured
            ),
            "bot_identity": bool(
                self.slack_service and self.slack_service.identity.user_id
            ),
            "monitored_channel": self.settings.slack.monitored_channel,
        }
        ready = checks["backend_configured"] and checks["bot_identity"]
        return web.json_response(
            {"status": "ready" if ready else "not_ready", "checks": checks},
            status=HTTP_OK if ready else HTTP_SERVICE_UNAVAILABLE,
        )
