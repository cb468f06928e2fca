"""Inbound Slack event model.

The generic ``message`` event and the dedicated ``app_mention`` event are
normalized into a single ``InboundEvent`` shape here so that admission is
decided in one place.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from .enums import ChannelType, MessageSubtype


class EventSource(str, Enum):
    """Platform entry point an event arrived through."""

    MESSAGE = "message"
    MENTION = "mention"


class InboundEvent(BaseModel):
    """A single platform delivery of a human (or bot) message."""

    channel_id: str
    author_id: str | None = None
    text: str = ""
    event_ts: str
    thread_ts: str | None = None
    is_broadcast_reply: bool = False
    author_is_bot: bool = False
    subtype: str | None = None
    channel_type: str | None = None
    source: EventSource = EventSource.MESSAGE

    model_config = ConfigDict(frozen=True)

    @property
    def is_thread_reply(self) -> bool:
        return bool(self.thread_ts) and self.thread_ts != self.event_ts

    @property
    def is_root_message(self) -> bool:
        return not self.is_thread_reply

    @property
    def thread_anchor(self) -> str:
        """Timestamp replies are threaded under."""
        return self.thread_ts or self.event_ts

    @property
    def is_direct(self) -> bool:
        return self.channel_type in (ChannelType.IM.value, ChannelType.MPIM.value)

    @classmethod
    def from_message_event(cls, event: dict[str, Any]) -> "InboundEvent":
        return cls._from_payload(event, EventSource.MESSAGE)

    @classmethod
    def from_mention_event(cls, event: dict[str, Any]) -> "InboundEvent":
        return cls._from_payload(event, EventSource.MENTION)

    @classmethod
    def _from_payload(cls, event: dict[str, Any], source: EventSource) -> "InboundEvent":
        subtype = event.get("subtype")
        return cls(
            channel_id=event.get("channel", ""),
            author_id=event.get("user"),
            text=event.get("text") or "",
            event_ts=event.get("ts", ""),
            thread_ts=event.get("thread_ts"),
            is_broadcast_reply=subtype == MessageSubtype.THREAD_BROADCAST.value,
            author_is_bot=bool(event.get("bot_id"))
            or subtype == MessageSubtype.BOT_MESSAGE.value,
            subtype=subtype,
            channel_type=event.get("channel_type"),
            source=source,
        )
