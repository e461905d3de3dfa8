"""Conversation view: the per-viewer composition of the reconciliation core."""

from .sender import SendCoordinator
from .view import ConversationView, IConversationView

__all__ = ["ConversationView", "IConversationView", "SendCoordinator"]
