"""Conversation continuity models.

None of these are persisted. ``ThreadState`` is rebuilt on every turn by
replaying the thread, and the conversation ID travels inside the bot's own
Slack messages.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.errors import FailureKind


@dataclass(frozen=True)
class ThreadState:
    """What the thread history says about an inbound message."""

    is_thread: bool
    is_root_message: bool
    has_prior_bot_reply: bool = False
    recovered_conversation_id: str | None = None


class OutboundReply(BaseModel):
    """A bot reply carrying its conversation ID in a hidden block."""

    text: str
    thread_ts: str | None = None
    conversation_id: str
    blocks: list[dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class BackendAnswer(BaseModel):
    """Successful response from the answer backend.

    Usage fields are logged, never interpreted.
    """

    response: str
    conversation_id: str | None = None
    query_id: Any = None
    tokens_used: Any = None
    latency_ms: Any = None
    context_items_used: Any = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("conversation_id", mode="before")
    @classmethod
    def coerce_conversation_id(cls, value: Any) -> str | None:
        """Backends may hand out numeric IDs, block_ids are always text."""
        if value is None or value == "":
            return None
        return str(value)

    @property
    def usage(self) -> dict[str, Any]:
        return {
            "query_id": self.query_id,
            "tokens_used": self.tokens_used,
            "latency_ms": self.latency_ms,
            "context_items_used": self.context_items_used,
        }


class AdmissionDecision(str, Enum):
    """Outcome of admission for one inbound event."""

    RESPOND = "respond"
    IGNORE = "ignore"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class AdmissionResult:
    """Admission decision plus what downstream needs to act on it.

    ``text`` is the message with any leading mention stripped. ``thread_state``
    is set when admission already replayed the thread and doubles as the
    conversation hint for the turn.
    """

    decision: AdmissionDecision
    reason: str
    text: str = ""
    thread_state: ThreadState | None = None

    @property
    def should_respond(self) -> bool:
        return self.decision == AdmissionDecision.RESPOND

    @property
    def conversation_hint(self) -> str | None:
        return self.thread_state.recovered_conversation_id if self.thread_state else None


class TurnState(str, Enum):
    """Turn lifecycle. FAILED is reachable from every non-terminal state."""

    ADMITTED = "admitted"
    LOCATING = "locating"
    THINKING_POSTED = "thinking_posted"
    AWAITING_BACKEND = "awaiting_backend"
    COMPOSING = "composing"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class TurnOutcome:
    """How a turn ended."""

    state: TurnState
    conversation_id: str | None = None
    reply_ts: str | None = None
    failure_kind: FailureKind | None = None
    located_conversation_id: str | None = None
