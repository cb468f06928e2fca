import logging

from handlers.message_handlers import handle_message
from models.slack import InboundEvent, SlackEventType
from services.admission import AdmissionClassifier
from services.turn_orchestrator import TurnOrchestrator
from utils.errors import handle_error

logger = logging.getLogger(__name__)


async def register_handlers(
    app, classifier: AdmissionClassifier, orchestrator: TurnOrchestrator
):
    """Register all event handlers with the Slack app"""

    @app.event(SlackEventType.APP_MENTION.value)
    async def handle_mention(event):
        """Handle when the bot is mentioned in a channel"""
        logger.info("Received app mention")
        await handle_message(
            InboundEvent.from_mention_event(event), classifier, orchestrator
        )

    @app.event(SlackEventType.MESSAGE.value)
    async def handle_message_event(event):
        """Handle all message events including those in threads"""
        logger.debug(
            f"Message event: channel={event.get('channel')}, user={event.get('user')}, "
            f"thread_ts={event.get('thread_ts')}, subtype={event.get('subtype')}"
        )
        await handle_message(
            InboundEvent.from_message_event(event), classifier, orchestrator
        )

    @app.error
    async def handle_global_error(error, body):
        """Log errors Bolt could not route to a listener"""
        event = (body or {}).get("event") or {}
        await handle_error(
            error, {"channel_id": event.get("channel"), "user_id": event.get("user")}
        )
