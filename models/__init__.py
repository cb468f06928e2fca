"""Data models for the relay bot."""

from .conversation import (
    AdmissionDecision,
    AdmissionResult,
    BackendAnswer,
    OutboundReply,
    ThreadState,
    TurnOutcome,
    TurnState,
)

__all__ = [
    "AdmissionDecision",
    "AdmissionResult",
    "BackendAnswer",
    "OutboundReply",
    "ThreadState",
    "TurnOutcome",
    "TurnState",
]
