"""Error taxonomy and user-facing failure rendering.

Admission skips are not errors and never reach this module. Everything else
that can go wrong during a turn is one of:

- ``HistoryFetchFailure``: thread history could not be read. Absorbed by the
  caller and treated as "no prior conversation".
- ``BackendFailure`` (defined with the backend client): retries exhausted.
- ``DeliveryFailure``: posting or editing the reply itself failed.

Backend failures are mapped to a ``FailureKind`` by a best-effort substring
match on the failure text, then rendered as an apology.
"""

import logging
from enum import Enum
from typing import Any

from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)


class HistoryFetchFailure(Exception):
    """Raised when a thread's reply history cannot be retrieved."""

    pass


class DeliveryFailure(Exception):
    """Raised when a message could not be posted, edited or deleted."""

    pass


class FailureKind(str, Enum):
    """User-facing failure categories."""

    TIMEOUT = "timeout"
    SATURATED = "saturated"
    UNAVAILABLE = "unavailable"
    NOT_CONFIGURED = "not_configured"
    UNKNOWN = "unknown"


# Order matters: the first matching category wins
_FAILURE_KEYWORDS: list[tuple[FailureKind, tuple[str, ...]]] = [
    (FailureKind.TIMEOUT, ("timeout", "timed out")),
    (
        FailureKind.SATURATED,
        ("rate limit", "rate_limited", "ratelimit", "too many requests", "busy"),
    ),
    (FailureKind.UNAVAILABLE, ("api", "unavailable", "connect", "backend")),
]


def classify_failure(error: BaseException) -> FailureKind:
    """Map an exception to a user-facing category by inspecting its text."""
    description = str(error).lower()
    for kind, keywords in _FAILURE_KEYWORDS:
        if any(keyword in description for keyword in keywords):
            return kind
    return FailureKind.UNKNOWN


def apology_for(kind: FailureKind, backend_name: str = "The assistant") -> str:
    """Render the apology text for a failure category."""
    if kind == FailureKind.TIMEOUT:
        return "⏰ Request timed out. Please try again."
    if kind == FailureKind.SATURATED:
        return "🚦 Service is busy. Please wait a moment and try again."
    if kind == FailureKind.UNAVAILABLE:
        return f"🤖 {backend_name} is temporarily unavailable. Please try again later."
    if kind == FailureKind.NOT_CONFIGURED:
        return (
            f"❌ {backend_name} is not configured. "
            "Please set BACKEND_BEARER_TOKEN environment variable."
        )
    return "❌ Something went wrong. Please try again."


# Operator guidance for Slack Web API error codes
SLACK_ERROR_GUIDANCE = {
    "rate_limited": "Rate limited by Slack API - backing off",
    "not_in_channel": "Bot is not in the channel - please invite the bot to the channel",
    "missing_scope": "Missing OAuth scope",
    "channel_not_found": "Channel not found - check if channel exists and bot has access",
    "user_not_found": "User not found - user may have been deactivated",
    "message_not_found": "Message not found - message may have been deleted",
    "invalid_auth": "Invalid authentication - check bot token",
    "account_inactive": "Slack account is inactive",
    "invalid_blocks": "Slack rejected the message blocks",
}


def describe_slack_error(error: BaseException) -> str:
    """Turn an error raised around a Slack call into an operator-facing hint."""
    if isinstance(error, SlackApiError):
        # SlackResponse and plain dicts both support .get()
        data: Any = error.response if error.response is not None else {}
        code = data.get("error") or "unknown"
        guidance = SLACK_ERROR_GUIDANCE.get(code)
        if code == "missing_scope":
            return (
                f"Missing OAuth scope: {data.get('needed')}. "
                f"Current scopes: {data.get('provided')}"
            )
        if guidance:
            return guidance
        return f"Unhandled Slack API error: {code}"

    description = str(error).lower()
    if isinstance(error, TimeoutError) or "timeout" in description:
        return "Request timeout - external service may be slow"
    if isinstance(error, ConnectionError) or "connect" in description:
        return "Network connectivity issue - check internet connection"
    return f"Unhandled error type: {type(error).__name__}"


async def handle_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """Global Slack Bolt error handler.

    Logs the error with whatever event context Bolt provides. Never raises.
    """
    context = context or {}
    logger.error(
        f"Global error occurred: {describe_slack_error(error)}",
        exc_info=error,
        extra={
            "error_type": type(error).__name__,
            "error_message": str(error),
            "channel_id": context.get("channel_id"),
            "user_id": context.get("user_id"),
            "event_type": "global_error",
        },
    )
