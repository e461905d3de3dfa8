"""Exceptions raised by backends and caught at the reconciliation boundary."""


class ChatSyncError(RuntimeError):
    """Base class for chatsync errors."""


class FetchFailure(ChatSyncError):
    """History load or refresh failed."""


class SendFailure(ChatSyncError):
    """The backend rejected a message send."""


class DeleteFailure(ChatSyncError):
    """The backend rejected a message delete."""


class MalformedPayload(ChatSyncError):
    """A history record or realtime event is missing required fields."""
