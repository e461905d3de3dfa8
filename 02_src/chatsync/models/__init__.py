"""Core data models for chatsync."""

from .conversations import Conversation, Participant
from .messages import (
    Attachment,
    ConfirmedMessage,
    Message,
    MessageStatus,
    PendingMessage,
    SenderProfile,
    is_temp_id,
)
from .state import Notice, NoticeLevel, ViewState
from .tracing import TraceEvent

__all__ = [
    # Messages
    "Attachment",
    "ConfirmedMessage",
    "Message",
    "MessageStatus",
    "PendingMessage",
    "SenderProfile",
    "is_temp_id",
    # Conversations
    "Conversation",
    "Participant",
    # View state
    "Notice",
    "NoticeLevel",
    "ViewState",
    # Tracing
    "TraceEvent",
]
