"""Message reconciliation for a realtime chat view."""

from .app import Application, IApplication
from .backend import IBackend, IRealtimeTransport, LocalBackend, RestBackend
from .config import DEFAULT_POLICY, ReconciliationPolicy
from .conversation import ConversationView, IConversationView, SendCoordinator
from .errors import (
    ChatSyncError,
    DeleteFailure,
    FetchFailure,
    MalformedPayload,
    SendFailure,
)
from .models import (
    Attachment,
    ConfirmedMessage,
    Conversation,
    Message,
    MessageStatus,
    Notice,
    NoticeLevel,
    Participant,
    PendingMessage,
    SenderProfile,
    TraceEvent,
    ViewState,
)
from .notices import INotifier, Notifier
from .profiles import ProfileDirectory
from .realtime import RealtimeHub, RealtimeListener
from .reconciliation import MessageStore, OptimisticOverlay, merge
from .storage import IStorage, Storage
from .tracker import ITracker, NullTracker, Tracker

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Attachment",
    "ConfirmedMessage",
    "Conversation",
    "Message",
    "MessageStatus",
    "Notice",
    "NoticeLevel",
    "Participant",
    "PendingMessage",
    "SenderProfile",
    "TraceEvent",
    "ViewState",
    # Errors
    "ChatSyncError",
    "DeleteFailure",
    "FetchFailure",
    "MalformedPayload",
    "SendFailure",
    # Reconciliation
    "DEFAULT_POLICY",
    "ReconciliationPolicy",
    "MessageStore",
    "OptimisticOverlay",
    "merge",
    # Components
    "IBackend",
    "IRealtimeTransport",
    "LocalBackend",
    "RestBackend",
    "RealtimeHub",
    "RealtimeListener",
    "ConversationView",
    "IConversationView",
    "SendCoordinator",
    "INotifier",
    "Notifier",
    "ProfileDirectory",
    "IStorage",
    "Storage",
    "ITracker",
    "NullTracker",
    "Tracker",
]
