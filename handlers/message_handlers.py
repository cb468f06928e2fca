"""Thin dispatch from a normalized Slack event to admission and the turn.

All continuity logic lives in the services. This module only routes the
admission decision and keeps one event's failure from escaping its task.
"""

import logging

from models.conversation import AdmissionDecision, TurnOutcome
from models.slack import InboundEvent
from services.admission import AdmissionClassifier
from services.turn_orchestrator import TurnOrchestrator

logger = logging.getLogger(__name__)


async def handle_message(
    event: InboundEvent,
    classifier: AdmissionClassifier,
    orchestrator: TurnOrchestrator,
) -> TurnOutcome | None:
    """
    Admit an inbound event and, if admitted, answer it.

    Args:
        event: Normalized Slack event
        classifier: Admission classifier
        orchestrator: Turn orchestrator

    Returns:
        The turn outcome when a turn ran, otherwise None
    """
    logger.info(
        "Processing user message",
        extra={
            "user_id": event.author_id,
            "channel_id": event.channel_id,
            "thread_ts": event.thread_ts,
            "message_ts": event.event_ts,
            "event_type": event.source.value,
        },
    )

    try:
        admission = await classifier.classify(event)

        if admission.decision == AdmissionDecision.REDIRECT:
            await orchestrator.send_redirect(event)
            return None

        if admission.decision == AdmissionDecision.IGNORE:
            logger.debug(f"Message ignored: {admission.reason}")
            return None

        return await orchestrator.run(event, admission)

    except Exception as e:
        logger.error(
            f"Error handling {event.source.value} event: {e}",
            exc_info=True,
            extra={"channel_id": event.channel_id, "message_ts": event.event_ts},
        )
        return None
