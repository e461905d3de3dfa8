"""Backend contracts and implementations."""

from .base import IBackend, InsertHandler, IRealtimeTransport, ISubscription
from .local_backend import IInsertPublisher, LocalBackend
from .records import (
    conversation_to_dict,
    message_to_record,
    parse_conversations,
    parse_history,
    parse_message_record,
)
from .rest_backend import RestBackend

__all__ = [
    "IBackend",
    "IInsertPublisher",
    "IRealtimeTransport",
    "ISubscription",
    "InsertHandler",
    "LocalBackend",
    "RestBackend",
    "conversation_to_dict",
    "message_to_record",
    "parse_conversations",
    "parse_history",
    "parse_message_record",
]
