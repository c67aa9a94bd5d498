"""Domain models for telety.

This package contains the core data structures, enumerations and value
objects shared by the prompt, the channel client and the session
coordinators. All models use Pydantic v2 for validation and serialization.
"""

from telety.domain.models import (
    AuthResult,
    ChannelMessage,
    ConnectionState,
    ExecutionOutcome,
    HistoryEntry,
    Message,
    MessageType,
    Submission,
    WebhookResponse,
    WebhookType,
)

__all__ = [
    "AuthResult",
    "ChannelMessage",
    "ConnectionState",
    "ExecutionOutcome",
    "HistoryEntry",
    "Message",
    "MessageType",
    "Submission",
    "WebhookResponse",
    "WebhookType",
]
