"""Recover conversation continuity by replaying Slack thread history.

There is no database. The thread itself is the conversation's state: the most
recent message the bot posted in it carries the conversation ID in a hidden
block. Only a bounded window of recent messages is scanned, so very long
threads whose last bot reply fell out of the window start a new conversation.
"""

import logging
from typing import Any

from handlers.constants import MAX_THREAD_MESSAGES, MAX_THREAD_PAGES
from models.conversation import ThreadState
from models.slack import BotIdentity
from services import conversation_codec
from services.slack_service import SlackService
from utils.errors import HistoryFetchFailure

logger = logging.getLogger(__name__)


class ThreadHistoryService:
    """Reads thread history to find the bot's previous replies."""

    def __init__(
        self,
        slack_service: SlackService,
        identity: BotIdentity,
        history_limit: int = MAX_THREAD_MESSAGES,
        max_pages: int = MAX_THREAD_PAGES,
    ):
        self.slack_service = slack_service
        self.identity = identity
        self.history_limit = history_limit
        self.max_pages = max_pages

    async def _fetch(self, channel_id: str, thread_ts: str) -> list[dict[str, Any]] | None:
        try:
            return await self.slack_service.get_thread_replies(
                channel_id, thread_ts, limit=self.history_limit, max_pages=self.max_pages
            )
        except HistoryFetchFailure as e:
            logger.warning(
                f"Could not retrieve thread history: {e}",
                extra={"channel_id": channel_id, "thread_ts": thread_ts},
            )
            return None

    def _scan(self, messages: list[dict[str, Any]]) -> tuple[bool, str | None]:
        """Walk newest to oldest. Returns (bot replied, most recent embedded ID)."""
        has_bot_reply = False
        for message in reversed(messages):
            if not self.identity.authored(message):
                continue
            has_bot_reply = True
            conversation_id = conversation_codec.decode(message)
            if conversation_id:
                return True, conversation_id
        return has_bot_reply, None

    async def locate_conversation(self, channel_id: str, thread_ts: str) -> str | None:
        """Find the conversation ID of a thread, or None for a new conversation.

        Fetch failures are not fatal and also return None.
        """
        messages = await self._fetch(channel_id, thread_ts)
        if not messages:
            return None

        _, conversation_id = self._scan(messages)
        if conversation_id:
            logger.info(
                f"Found existing conversation ID: {conversation_id}",
                extra={
                    "channel_id": channel_id,
                    "thread_ts": thread_ts,
                    "conversation_id": conversation_id,
                },
            )
        return conversation_id

    async def inspect_thread(
        self, channel_id: str, thread_ts: str | None, event_ts: str
    ) -> ThreadState:
        """Derive the thread state for a message from the thread's history."""
        is_thread = bool(thread_ts)
        is_root = not thread_ts or thread_ts == event_ts
        if is_root:
            return ThreadState(is_thread=is_thread, is_root_message=True)

        messages = await self._fetch(channel_id, thread_ts)  # type: ignore[arg-type]
        if not messages:
            return ThreadState(is_thread=True, is_root_message=False)

        has_bot_reply, conversation_id = self._scan(messages)
        return ThreadState(
            is_thread=True,
            is_root_message=False,
            has_prior_bot_reply=has_bot_reply,
            recovered_conversation_id=conversation_id,
        )
