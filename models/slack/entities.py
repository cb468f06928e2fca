"""Slack entity models"""

from pydantic import BaseModel, ConfigDict


class BotIdentity(BaseModel):
    """Who the bot is on Slack, resolved once at startup via auth.test.

    ``user_id`` is the bot user (U...) that appears in mentions, ``bot_id`` is
    the bot ID (B...) stamped on every message the bot posts.
    """

    user_id: str | None = None
    bot_id: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def mention(self) -> str | None:
        return f"<@{self.user_id}>" if self.user_id else None

    def authored(self, message: dict) -> bool:
        """Whether a raw Slack message was posted by this bot.

        With no known identity any bot-posted message counts.
        """
        msg_bot_id = message.get("bot_id")
        msg_user = message.get("user")

        if not self.user_id and not self.bot_id:
            return bool(msg_bot_id)

        if msg_bot_id and msg_bot_id in (self.bot_id, self.user_id):
            return True
        return bool(msg_user) and msg_user in (self.user_id, self.bot_id)
