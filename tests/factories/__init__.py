"""
Centralized test factories and builders
"""

from .backend import BackendResponseFactory
from .settings import EnvironmentVariableFactory
from .slack import (
    BOT_ID,
    BOT_USER_ID,
    SlackClientFactory,
    SlackEventFactory,
    ThreadHistoryBuilder,
)

__all__ = [
    # Identity constants
    "BOT_ID",
    "BOT_USER_ID",
    # Slack
    "SlackClientFactory",
    "SlackEventFactory",
    "ThreadHistoryBuilder",
    # Backend
    "BackendResponseFactory",
    # Settings
    "EnvironmentVariableFactory",
]
