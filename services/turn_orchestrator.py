"""Run one admitted conversational turn end to end.

    ADMITTED -> LOCATING -> THINKING_POSTED -> AWAITING_BACKEND
             -> COMPOSING -> DELIVERED

FAILED is reachable from every non-terminal state. Once the thinking
placeholder is posted it is always resolved: edited into the answer, edited
into an apology, or deleted and replaced by an apology.
"""

import asyncio
import contextlib
import logging
import time
import uuid
from typing import Any

from handlers.constants import EMPTY_RESPONSE_TEXT, REDIRECT_MESSAGE_TEMPLATE
from models.conversation import AdmissionResult, TurnOutcome, TurnState
from models.slack import InboundEvent
from services import conversation_codec
from services.backend_client import BackendClient
from services.slack_service import SlackService
from services.thread_history import ThreadHistoryService
from utils.errors import DeliveryFailure, FailureKind, apology_for, classify_failure

logger = logging.getLogger(__name__)


def new_conversation_id() -> str:
    return str(uuid.uuid4())


class TurnOrchestrator:
    """Composes history lookup, backend call and reply delivery for a turn."""

    def __init__(
        self,
        slack_service: SlackService,
        thread_history: ThreadHistoryService,
        backend_client: BackendClient,
        monitored_channel: str | None = None,
        backend_name: str = "The assistant",
    ):
        self.slack_service = slack_service
        self.thread_history = thread_history
        self.backend_client = backend_client
        self.monitored_channel = monitored_channel
        self.backend_name = backend_name

    async def send_redirect(self, event: InboundEvent) -> str | None:
        """Point a direct message at the monitored channel. No backend call."""
        if not self.monitored_channel:
            return None
        text = REDIRECT_MESSAGE_TEMPLATE.format(channel=self.monitored_channel)
        return await self.slack_service.send_message(event.channel_id, text)

    def _build_context(
        self, event: InboundEvent, located_id: str | None
    ) -> dict[str, Any]:
        context: dict[str, Any] = {
            "thread_ts": event.thread_anchor,
            "channel": event.channel_id,
            "user_id": event.author_id,
        }
        # No ID on a first turn tells the backend to start fresh
        if located_id:
            context["conversation_id"] = located_id
        return context

    async def _locate(self, event: InboundEvent, admission: AdmissionResult) -> str | None:
        if admission.thread_state is not None:
            return admission.conversation_hint
        return await self.thread_history.locate_conversation(
            event.channel_id, event.thread_anchor
        )

    async def run(self, event: InboundEvent, admission: AdmissionResult) -> TurnOutcome:
        """Answer one admitted event. Never raises."""
        start_time = time.time()
        channel = event.channel_id
        thread_ts = event.thread_anchor
        log_extra = {
            "channel_id": channel,
            "user_id": event.author_id,
            "thread_ts": thread_ts,
            "message_ts": event.event_ts,
        }

        outcome = TurnOutcome(state=TurnState.ADMITTED)
        placeholder_ts: str | None = None

        if not self.backend_client.is_configured:
            logger.error("Backend is not configured, skipping turn", extra=log_extra)
            outcome.state = TurnState.FAILED
            outcome.failure_kind = FailureKind.NOT_CONFIGURED
            outcome.reply_ts = await self._deliver_apology(
                channel,
                thread_ts,
                None,
                apology_for(FailureKind.NOT_CONFIGURED, self.backend_name),
            )
            return outcome

        try:
            located_id: str | None = None
            if event.is_thread_reply:
                outcome.state = TurnState.LOCATING
                located_id = await self._locate(event, admission)
                outcome.located_conversation_id = located_id

            minted_id = None
            if not located_id:
                minted_id = new_conversation_id()
                logger.info(
                    f"Created new conversation ID: {minted_id}",
                    extra={**log_extra, "conversation_id": minted_id},
                )

            placeholder_ts = await self.slack_service.send_thinking_indicator(
                channel, thread_ts
            )
            if not placeholder_ts:
                raise DeliveryFailure("Could not post thinking message")
            outcome.state = TurnState.THINKING_POSTED

            outcome.state = TurnState.AWAITING_BACKEND
            answer = await self.backend_client.ask(
                admission.text, self._build_context(event, located_id)
            )
            logger.info(
                "Backend response received",
                extra={**log_extra, **answer.usage},
            )

            outcome.state = TurnState.COMPOSING
            # The backend's ID wins over the one recovered from history
            conversation_id = answer.conversation_id or located_id or minted_id
            if answer.conversation_id and located_id and answer.conversation_id != located_id:
                logger.warning(
                    f"Backend returned conversation ID {answer.conversation_id}, "
                    f"thread carried {located_id}; using the backend's",
                    extra={**log_extra, "conversation_id": answer.conversation_id},
                )
            outcome.conversation_id = conversation_id

            reply = conversation_codec.encode(
                answer.response or EMPTY_RESPONSE_TEXT,
                conversation_id,  # type: ignore[arg-type]
                thread_ts,
            )
            updated = await self.slack_service.update_message(
                channel, placeholder_ts, reply.text, reply.blocks
            )
            if not updated:
                raise DeliveryFailure(f"Could not edit thinking message {placeholder_ts}")

            outcome.state = TurnState.DELIVERED
            outcome.reply_ts = placeholder_ts
            logger.info(
                f"Delivered reply in {time.time() - start_time:.2f}s",
                extra={
                    **log_extra,
                    "conversation_id": conversation_id,
                    "turn_state": outcome.state.value,
                },
            )
            return outcome

        except asyncio.CancelledError:
            if placeholder_ts and outcome.state != TurnState.DELIVERED:
                with contextlib.suppress(Exception):
                    await asyncio.shield(
                        self.slack_service.delete_message(channel, placeholder_ts)
                    )
            raise

        except Exception as e:
            failed_in = outcome.state
            kind = classify_failure(e)
            outcome.state = TurnState.FAILED
            outcome.failure_kind = kind
            logger.error(
                f"Error processing message in state {failed_in.value}: {e}",
                exc_info=True,
                extra={
                    **log_extra,
                    "turn_state": failed_in.value,
                    "failure_kind": kind.value,
                },
            )
            outcome.reply_ts = await self._deliver_apology(
                channel, thread_ts, placeholder_ts, apology_for(kind, self.backend_name)
            )
            return outcome

    async def _deliver_apology(
        self, channel: str, thread_ts: str, placeholder_ts: str | None, text: str
    ) -> str | None:
        """Resolve the placeholder with an apology. Best effort, never raises."""
        try:
            if placeholder_ts and await self.slack_service.update_message(
                channel, placeholder_ts, text
            ):
                return placeholder_ts

            if placeholder_ts:
                with contextlib.suppress(Exception):
                    await self.slack_service.delete_message(channel, placeholder_ts)

            ts = await self.slack_service.send_message(channel, text, thread_ts)
            if not ts:
                logger.error(
                    "Error sending fallback message",
                    extra={"channel_id": channel, "thread_ts": thread_ts},
                )
            return ts
        except Exception as fallback_error:
            logger.error(
                f"Error sending fallback message: {fallback_error}",
                extra={"channel_id": channel, "thread_ts": thread_ts},
            )
            return None
