"""Backend served from local SQLite storage with in-process realtime."""

from typing import Protocol

from ..errors import DeleteFailure, FetchFailure, SendFailure
from ..logging_config import get_logger, log_context
from ..models import Attachment, Conversation
from ..storage import IStorage

logger = get_logger(__name__)


class IInsertPublisher(Protocol):
    """Receives every row inserted into ``messages``."""

    async def publish(self, record: dict) -> int:
        ...


class LocalBackend:
    """IBackend over Storage; publishes inserts like a realtime table feed."""

    def __init__(self, storage: IStorage, publisher: IInsertPublisher | None = None):
        self._storage = storage
        self._publisher = publisher

    async def fetch_messages(self, channel_id: str) -> list[dict]:
        """Return message rows for a conversation."""
        try:
            return await self._storage.get_messages(channel_id)
        except Exception as e:
            raise FetchFailure(f"Failed to load messages for {channel_id}: {e}") from e

    async def send_message(
        self,
        channel_id: str,
        sender_id: str,
        content: str,
        attachments: list[Attachment] | None = None,
    ) -> dict:
        """Insert a message and publish it to realtime subscribers."""
        attachments = attachments or []
        if not content and not attachments:
            raise SendFailure("Message must have content or attachments")

        try:
            conversation = await self._storage.get_conversation(channel_id)
        except Exception as e:
            raise SendFailure(f"Failed to send message: {e}") from e

        if conversation is None:
            raise SendFailure(f"Unknown channel: {channel_id}")
        if not any(p.user_id == sender_id for p in conversation.participants):
            raise SendFailure(f"{sender_id} is not a participant of {channel_id}")

        try:
            record = await self._storage.insert_message(
                channel_id, sender_id, content, attachments
            )
        except Exception as e:
            raise SendFailure(f"Failed to send message: {e}") from e

        logger.debug(
            "Message inserted",
            extra=log_context(channel_id=channel_id, message_id=record["id"]),
        )

        if self._publisher:
            # Delivery problems must not turn a persisted send into a failure
            try:
                await self._publisher.publish(record)
            except Exception as e:
                logger.error("Realtime publish failed: %s", e, exc_info=True)

        return record

    async def delete_message(self, message_id: str) -> None:
        """Delete a message by id."""
        try:
            deleted = await self._storage.delete_message(message_id)
        except Exception as e:
            raise DeleteFailure(f"Failed to delete message {message_id}: {e}") from e
        if not deleted:
            raise DeleteFailure(f"Message not found: {message_id}")

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Conversations the user participates in."""
        try:
            return await self._storage.get_conversations(user_id)
        except Exception as e:
            raise FetchFailure(f"Failed to load conversations: {e}") from e
