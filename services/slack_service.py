import logging
from typing import Any

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from config.settings import SlackSettings
from handlers.constants import THINKING_MESSAGE_TEXT
from models.slack import BotIdentity
from utils.errors import HistoryFetchFailure, describe_slack_error

logger = logging.getLogger(__name__)


class SlackService:
    """Service for interacting with the Slack API"""

    def __init__(
        self,
        settings: SlackSettings,
        client: AsyncWebClient,
        identity: BotIdentity | None = None,
    ):
        self.settings = settings
        self.client = client
        self.identity = identity or BotIdentity(bot_id=settings.bot_id or None)

    async def resolve_identity(self) -> BotIdentity:
        """Look up the bot's own user and bot IDs via auth.test."""
        auth_test = await self.client.auth_test()
        identity = BotIdentity(
            user_id=auth_test.get("user_id"),
            bot_id=auth_test.get("bot_id") or self.settings.bot_id or None,
        )
        logger.info(
            f"Bot authenticated: {auth_test.get('user')} "
            f"(user_id={identity.user_id}, bot_id={identity.bot_id})"
        )
        self.identity = identity
        return identity

    async def send_message(
        self,
        channel: str,
        text: str,
        thread_ts: str | None = None,
        blocks: list[dict[str, Any]] | None = None,
        mrkdwn: bool = True,
    ) -> str | None:
        """Send a message to a Slack channel. Returns the message ts or None."""
        try:
            response = await self.client.chat_postMessage(
                channel=channel,
                text=text,
                thread_ts=thread_ts,
                blocks=blocks,
                mrkdwn=mrkdwn,
                unfurl_links=False,
                unfurl_media=False,
            )
            return response.get("ts")  # type: ignore[no-any-return]
        except SlackApiError as e:
            logger.error(
                f"Error sending message: {e} ({describe_slack_error(e)})",
                extra={"channel_id": channel, "thread_ts": thread_ts},
            )
            return None

    async def send_thinking_indicator(
        self, channel: str, thread_ts: str | None = None
    ) -> str | None:
        """Post the placeholder shown while the backend is working"""
        ts = await self.send_message(channel, THINKING_MESSAGE_TEXT, thread_ts)
        if ts:
            logger.info(f"Posted thinking message: {ts}")
        return ts

    async def update_message(
        self,
        channel: str,
        ts: str,
        text: str,
        blocks: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Edit an existing message in place"""
        try:
            await self.client.chat_update(
                channel=channel,
                ts=ts,
                text=text,
                blocks=blocks,
            )
            return True
        except SlackApiError as e:
            logger.error(
                f"Error updating message {ts}: {e} ({describe_slack_error(e)})",
                extra={"channel_id": channel, "message_ts": ts},
            )
            return False

    async def delete_message(self, channel: str, ts: str | None) -> bool:
        """Delete a message with error handling"""
        if not ts:
            return False

        try:
            await self.client.chat_delete(channel=channel, ts=ts)
            return True
        except SlackApiError as e:
            logger.error(
                f"Error deleting message {ts}: {e} ({describe_slack_error(e)})",
                extra={"channel_id": channel, "message_ts": ts},
            )
            return False

    async def get_thread_replies(
        self, channel: str, thread_ts: str, limit: int = 50, max_pages: int = 5
    ) -> list[dict[str, Any]]:
        """Fetch the most recent messages of a thread, oldest first.

        conversations.replies pages from the oldest message, so pages are
        followed up to ``max_pages`` and only the last ``limit`` messages are
        kept. Threads longer than ``limit * max_pages`` messages are cut off:
        the result is then the tail of the pages read, not the newest
        messages of the thread, and a warning is logged.

        Raises:
            HistoryFetchFailure: If Slack refuses or the call fails
        """
        messages: list[dict[str, Any]] = []
        cursor: str | None = None
        truncated = False

        try:
            for _ in range(max_pages):
                response = await self.client.conversations_replies(
                    channel=channel, ts=thread_ts, limit=limit, cursor=cursor
                )
                messages.extend(response.get("messages") or [])
                messages = messages[-limit:]

                metadata = response.get("response_metadata") or {}
                cursor = metadata.get("next_cursor")
                if not response.get("has_more") or not cursor:
                    break
            else:
                truncated = True
        except SlackApiError as e:
            raise HistoryFetchFailure(
                f"Could not retrieve thread history for {thread_ts}: {describe_slack_error(e)}"
            ) from e
        except Exception as e:
            raise HistoryFetchFailure(
                f"Could not retrieve thread history for {thread_ts}: {e}"
            ) from e

        if truncated:
            logger.warning(
                f"Thread history exceeds {max_pages} pages of {limit} messages, "
                "newer messages were not read",
                extra={"channel_id": channel, "thread_ts": thread_ts},
            )

        logger.debug(
            f"Retrieved {len(messages)} messages from thread history",
            extra={"channel_id": channel, "thread_ts": thread_ts},
        )
        return messages
