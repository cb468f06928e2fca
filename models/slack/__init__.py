"""Typed models for Slack events and identities."""

from .entities import BotIdentity
from .enums import ChannelType, MessageSubtype, SLACKBOT_USER_ID, SlackEventType
from .event import EventSource, InboundEvent

__all__ = [
    # Enums
    "SlackEventType",
    "MessageSubtype",
    "ChannelType",
    "SLACKBOT_USER_ID",
    # Entities
    "BotIdentity",
    # Event
    "EventSource",
    "InboundEvent",
]
