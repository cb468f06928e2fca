"""Hide a conversation ID inside a Slack reply and read it back.

The ID rides in the ``block_id`` of the single section block that renders the
reply text. ``block_id`` is never shown to users but Slack stores it verbatim
and returns it from ``conversations.replies``.
"""

import logging
from typing import Any

from models.conversation import OutboundReply

logger = logging.getLogger(__name__)

CONVERSATION_BLOCK_PREFIX = "conv_"

# Slack Block Kit limits
MAX_BLOCK_ID_LENGTH = 255
MAX_SECTION_TEXT_LENGTH = 3000


def conversation_block_id(conversation_id: str) -> str:
    """Build the block_id that carries a conversation ID."""
    if not conversation_id:
        raise ValueError("conversation_id must be a non-empty string")

    block_id = f"{CONVERSATION_BLOCK_PREFIX}{conversation_id}"
    if len(block_id) > MAX_BLOCK_ID_LENGTH:
        raise ValueError(
            f"conversation_id too long for a block_id ({len(block_id)} > {MAX_BLOCK_ID_LENGTH})"
        )
    return block_id


def encode(text: str, conversation_id: str, thread_ts: str | None = None) -> OutboundReply:
    """Build an outbound reply whose only block carries the conversation ID."""
    block_text = text
    if len(block_text) > MAX_SECTION_TEXT_LENGTH:
        logger.warning(
            f"Reply text exceeds section limit ({len(text)} chars), truncating block text"
        )
        block_text = block_text[: MAX_SECTION_TEXT_LENGTH - 1] + "…"

    blocks = [
        {
            "type": "section",
            "block_id": conversation_block_id(conversation_id),
            "text": {"type": "mrkdwn", "text": block_text},
        }
    ]
    return OutboundReply(
        text=text,
        thread_ts=thread_ts,
        conversation_id=conversation_id,
        blocks=blocks,
    )


def decode(message: dict[str, Any]) -> str | None:
    """Return the conversation ID embedded in a Slack message, if any.

    Blocks are scanned in order and the first tagged ``block_id`` wins.
    """
    for block in message.get("blocks") or []:
        block_id = block.get("block_id") if isinstance(block, dict) else None
        if not block_id or not block_id.startswith(CONVERSATION_BLOCK_PREFIX):
            continue

        conversation_id = block_id[len(CONVERSATION_BLOCK_PREFIX) :]
        if conversation_id:
            return conversation_id

    return None
