"""Contracts the reconciliation core requires from the hosted backend."""

from typing import Awaitable, Callable, Protocol

from ..models import Attachment, Conversation

InsertHandler = Callable[[dict], Awaitable[None]]


class IBackend(Protocol):
    """Persistence side of the hosted backend."""

    async def fetch_messages(self, channel_id: str) -> list[dict]:
        """Return raw message records for a conversation. Must be idempotent."""
        ...

    async def send_message(
        self,
        channel_id: str,
        sender_id: str,
        content: str,
        attachments: list[Attachment] | None = None,
    ) -> dict:
        """Persist a new message; raise SendFailure if rejected."""
        ...

    async def delete_message(self, message_id: str) -> None:
        """Remove a message server-side; raise DeleteFailure if rejected."""
        ...

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Conversations the user participates in, most recent first."""
        ...


class ISubscription(Protocol):
    """Handle to an active realtime subscription."""

    @property
    def channel_id(self) -> str:
        ...

    async def unsubscribe(self) -> None:
        """Stop delivery. Safe to call more than once."""
        ...


class IRealtimeTransport(Protocol):
    """Push channel delivering message inserts, filtered by conversation."""

    async def subscribe(
        self, channel_id: str, handler: InsertHandler
    ) -> ISubscription:
        """Deliver every insert event for ``channel_id`` to ``handler``."""
        ...
