import asyncio
import contextlib
import logging
import signal
import sys
import traceback

from aiohttp import web
from dotenv import load_dotenv
from slack_bolt.adapter.socket_mode.aiohttp import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

from config.settings import Settings, validate_settings
from handlers.event_handlers import register_handlers
from health import HealthChecker
from services.admission import AdmissionClassifier, AdmissionPolicy
from services.backend_client import BackendClient
from services.slack_service import SlackService
from services.thread_history import ThreadHistoryService
from services.turn_orchestrator import TurnOrchestrator
from utils.logging import configure_logging

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

EVENTS_PATH = "/slack/events"

# Global shutdown event
shutdown_event = asyncio.Event()


def create_app(settings: Settings):
    """Create the Slack app and the services that do not need the network"""
    app = AsyncApp(
        token=settings.slack.bot_token,
        signing_secret=settings.slack.signing_secret.get_secret_value() or None,
    )
    slack_service = SlackService(settings.slack, app.client)
    backend_client = BackendClient.from_settings(settings.backend)
    return app, slack_service, backend_client


async def build_pipeline(
    settings: Settings, slack_service: SlackService, backend_client: BackendClient
) -> tuple[AdmissionClassifier, TurnOrchestrator]:
    """Resolve the bot identity and wire admission and the turn orchestrator"""
    identity = await slack_service.resolve_identity()

    thread_history = ThreadHistoryService(
        slack_service,
        identity,
        history_limit=settings.conversation.history_limit,
        max_pages=settings.conversation.history_max_pages,
    )
    policy = AdmissionPolicy(
        identity=identity, monitored_channel=settings.slack.monitored_channel
    )
    classifier = AdmissionClassifier(policy, thread_history)
    orchestrator = TurnOrchestrator(
        slack_service,
        thread_history,
        backend_client,
        monitored_channel=settings.slack.monitored_channel,
        backend_name=settings.backend.display_name,
    )
    return classifier, orchestrator


def log_startup_banner(settings: Settings, backend_client: BackendClient) -> None:
    monitored = settings.slack.monitored_channel
    logger.info("⚡️ Slack bot is running!")
    logger.info(
        f"📢 Monitoring channel: {monitored or '⚠️ Not configured - will respond to all channels'}"
    )
    logger.info(
        f"🤖 Backend integration: "
        f"{'✅ Enabled' if backend_client.is_configured else '⚠️ Disabled (BACKEND_BEARER_TOKEN not set)'}"
    )
    logger.info(f"🔗 Backend URL: {settings.backend.url}")
    if settings.slack.socket_mode:
        logger.info("🔌 Socket Mode: Enabled")
    else:
        logger.info(f"🌐 Events API: Enabled on port {settings.slack.port} ({EVENTS_PATH})")


def signal_handler(signum, _):
    """Handle shutdown signals"""
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_event.set()


async def run():
    """Start the Slack bot asynchronously with graceful shutdown"""
    settings = Settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    problems = validate_settings(settings)
    if problems:
        logger.error("❌ Invalid configuration:")
        for problem in problems:
            logger.error(f"  - {problem}")
        sys.exit(1)
    logger.info("🔧 Configuration validated successfully")

    # Setup signal handlers
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    health_checker = None
    handler = None
    backend_client = None
    server_task = None
    events_runner = None

    try:
        app, slack_service, backend_client = create_app(settings)
        classifier, orchestrator = await build_pipeline(
            settings, slack_service, backend_client
        )

        await register_handlers(app, classifier, orchestrator)

        health_checker = HealthChecker(settings, backend_client, slack_service)
        await health_checker.start_server(settings.health_port)
        logger.info(f"Health check server started on port {settings.health_port}")

        logger.info("🚀 Starting Slack bot...")
        if settings.slack.socket_mode:
            handler = AsyncSocketModeHandler(app, settings.slack.app_token)
            server_task = asyncio.create_task(handler.start_async())
        else:
            events_runner = web.AppRunner(
                app.web_app(path=EVENTS_PATH, port=settings.slack.port)
            )
            await events_runner.setup()
            await web.TCPSite(events_runner, "0.0.0.0", settings.slack.port).start()

        log_startup_banner(settings, backend_client)

        # Wait for shutdown signal
        await shutdown_event.wait()
        logger.info("Shutdown signal received, cleaning up...")

        if server_task:
            server_task.cancel()
            with contextlib.suppress(Exception, asyncio.CancelledError):
                await asyncio.gather(server_task, return_exceptions=True)

    except Exception as e:
        logger.error(f"💥 Failed to run app: {e}")
        logger.error(f"Application error traceback: {traceback.format_exc()}")
        raise
    finally:
        logger.info("Cleaning up resources...")

        if handler:
            try:
                await handler.close_async()
            except Exception as e:
                logger.error(f"Error closing socket handler: {e}")

        if events_runner:
            try:
                await events_runner.cleanup()
            except Exception as e:
                logger.error(f"Error stopping Events API server: {e}")

        if backend_client:
            try:
                await backend_client.close()
            except Exception as e:
                logger.error(f"Error closing backend client: {e}")

        if health_checker:
            try:
                await health_checker.stop_server()
            except Exception as e:
                logger.error(f"Error stopping health check server: {e}")

        logger.info("Shutdown complete")


def main():
    """Main entry point"""
    asyncio.run(run())


if __name__ == "__main__":
    main()
