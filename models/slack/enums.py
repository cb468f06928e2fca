"""Slack enumerations"""

from enum import Enum


class SlackEventType(str, Enum):
    """Slack event types the bot listens to."""

    MESSAGE = "message"
    APP_MENTION = "app_mention"


class MessageSubtype(str, Enum):
    """Message subtypes relevant to admission."""

    THREAD_BROADCAST = "thread_broadcast"
    BOT_MESSAGE = "bot_message"
    MESSAGE_CHANGED = "message_changed"
    MESSAGE_DELETED = "message_deleted"


class ChannelType(str, Enum):
    """Conversation types reported on message events."""

    CHANNEL = "channel"
    GROUP = "group"
    IM = "im"
    MPIM = "mpim"


# Slackbot posts reminders and system notices under this user ID
SLACKBOT_USER_ID = "USLACKBOT"
