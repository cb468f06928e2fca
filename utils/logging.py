"""Structured JSON logging for the relay bot."""

import json
import logging
import sys
from datetime import UTC, datetime

# Fields passed through ``extra=`` that are promoted into the JSON entry
STRUCTURED_FIELDS = (
    "event_type",
    "channel_id",
    "user_id",
    "thread_ts",
    "message_ts",
    "conversation_id",
    "attempt",
    "turn_state",
    "failure_kind",
    "query_id",
    "tokens_used",
    "latency_ms",
    "context_items_used",
    "error_type",
)


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in STRUCTURED_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, default=str)


def configure_logging(level: str | int = logging.INFO, json_output: bool = True) -> None:
    """Configure the root logger.

    Parameters
    ----------
    level:
        Logging level name or number.
    json_output:
        If *True*, use JSON formatting; otherwise plain text.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    formatter: logging.Formatter
    if json_output:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    # slack_sdk and httpx are chatty at INFO
    for noisy in ("slack_sdk", "slack_bolt", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
