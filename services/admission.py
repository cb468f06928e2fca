"""Decide whether an inbound Slack event is a conversational turn to answer.

Both Slack entry points (generic ``message`` and dedicated ``app_mention``)
arrive here as one ``InboundEvent`` shape. Rules are applied in order and the
first match wins. Addressed messages are answered through the mention entry
point only, so the same human message is never processed twice.
"""

import logging
import re
from dataclasses import dataclass

from models.conversation import AdmissionDecision, AdmissionResult, ThreadState
from models.slack import (
    SLACKBOT_USER_ID,
    BotIdentity,
    EventSource,
    InboundEvent,
    MessageSubtype,
)
from services.thread_history import ThreadHistoryService

logger = logging.getLogger(__name__)

# "<@U123> ", "<@U123|matt> " at the very start of the message
LEADING_MENTION_PATTERN = re.compile(r"^\s*<@[A-Z0-9]+(?:\|[^>]*)?>\s*")

# "side note", "sidenote", "side-note", any case
ASIDE_PATTERN = re.compile(r"^side[\s-]?note\b", re.IGNORECASE)


def strip_leading_mention(text: str) -> str:
    """Remove one leading mention token and the whitespace after it."""
    return LEADING_MENTION_PATTERN.sub("", text or "", count=1).strip()


def is_aside(text: str) -> bool:
    """Whether the author explicitly opted this remark out of the conversation."""
    return bool(ASIDE_PATTERN.match(text.strip()))


@dataclass(frozen=True)
class AdmissionPolicy:
    """Immutable admission configuration built once at startup."""

    identity: BotIdentity
    monitored_channel: str | None = None
    system_user_id: str = SLACKBOT_USER_ID
    broadcast_subtype: str = MessageSubtype.THREAD_BROADCAST.value


class AdmissionClassifier:
    """Maps inbound events to respond / ignore / redirect."""

    def __init__(self, policy: AdmissionPolicy, thread_history: ThreadHistoryService):
        self.policy = policy
        self.thread_history = thread_history

    def _ignore(self, event: InboundEvent, reason: str, text: str = "") -> AdmissionResult:
        logger.debug(
            f"Ignoring event: {reason}",
            extra={"channel_id": event.channel_id, "message_ts": event.event_ts},
        )
        return AdmissionResult(AdmissionDecision.IGNORE, reason, text)

    def _addresses_bot(self, text: str) -> bool:
        user_id = self.policy.identity.user_id
        if not user_id:
            return False
        # Both "<@U123>" and the labelled "<@U123|name>" form
        return bool(re.search(rf"<@{re.escape(user_id)}(?:\|[^>]*)?>", text))

    async def classify(self, event: InboundEvent) -> AdmissionResult:
        """Classify one inbound event."""
        policy = self.policy

        # 1. Bots, the system assistant, and non-broadcast subtypes
        if event.author_is_bot:
            return self._ignore(event, "bot_author")
        if not event.author_id or event.author_id == policy.system_user_id:
            return self._ignore(event, "system_author")
        if event.subtype and event.subtype != policy.broadcast_subtype:
            return self._ignore(event, f"subtype:{event.subtype}")

        # 2. DMs and group DMs get pointed at the monitored channel
        if event.is_direct and policy.monitored_channel:
            logger.info(
                "Redirecting direct message to monitored channel",
                extra={"channel_id": event.channel_id, "user_id": event.author_id},
            )
            return AdmissionResult(AdmissionDecision.REDIRECT, "direct_message")

        # 3. Channel filter
        if policy.monitored_channel and event.channel_id != policy.monitored_channel:
            return self._ignore(event, "unmonitored_channel")

        # 4. Everything downstream works on the mention-stripped text
        text = strip_leading_mention(event.text)

        if event.source == EventSource.MENTION:
            logger.info(
                "Admitting explicit mention",
                extra={"channel_id": event.channel_id, "thread_ts": event.thread_ts},
            )
            return AdmissionResult(AdmissionDecision.RESPOND, "mention", text)

        # 5. Explicit asides
        if is_aside(text):
            return self._ignore(event, "aside", text)

        # 6. Addressed messages belong to the mention entry point
        if self._addresses_bot(event.text):
            return self._ignore(event, "handled_by_mention_path", text)

        # 7. Replies in threads the bot is already part of
        if event.is_thread_reply:
            state: ThreadState = await self.thread_history.inspect_thread(
                event.channel_id, event.thread_ts, event.event_ts
            )
            if state.has_prior_bot_reply:
                logger.info(
                    "Admitting reply in active thread",
                    extra={
                        "channel_id": event.channel_id,
                        "thread_ts": event.thread_ts,
                        "conversation_id": state.recovered_conversation_id,
                    },
                )
                return AdmissionResult(
                    AdmissionDecision.RESPOND, "active_thread", text, state
                )
            return self._ignore(event, "inactive_thread", text)

        # 8. Root message, no mention
        return self._ignore(event, "root_without_mention", text)
