"""Conversation state for chorus-server.

This package provides the message types, the in-memory per-provider
history, the durable history log and the registry of live handlers.
"""

from chorus_server.sessions.history import ConversationHistory
from chorus_server.sessions.registry import SessionRegistry
from chorus_server.sessions.store import HistoryStore, JsonHistoryStore, StoredMessage
from chorus_server.sessions.types import (
    Message,
    Role,
    ToolCallRequest,
    ToolCallResult,
)

__all__ = [
    # Core classes
    "ConversationHistory",
    "SessionRegistry",
    # Persistence
    "HistoryStore",
    "JsonHistoryStore",
    "StoredMessage",
    # Message types
    "Message",
    "Role",
    "ToolCallRequest",
    "ToolCallResult",
]
