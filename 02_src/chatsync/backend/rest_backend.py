"""
REST backend for a PostgREST-shaped hosted API.

Speaks the same IBackend contract as LocalBackend:
- history: GET /rest/v1/messages with embedded message_attachments
- send: POST /rest/v1/messages, then POST /rest/v1/message_attachments
- delete: DELETE /rest/v1/messages?id=eq.<id>
- conversations: POST /rest/v1/rpc/get_user_conversations_with_display_name
"""

import httpx

from ..errors import DeleteFailure, FetchFailure, SendFailure
from ..logging_config import get_logger, log_context
from ..models import Attachment, Conversation
from .local_backend import IInsertPublisher
from .records import parse_conversations

logger = get_logger(__name__)

REST_PREFIX = "/rest/v1"
HISTORY_SELECT = "*,attachments:message_attachments(*)"


class RestBackend:
    """IBackend over httpx.AsyncClient.

    ``publisher``, when given, receives every row this client inserts, so
    local views subscribed to an in-process hub see their own sends.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        publisher: IInsertPublisher | None = None,
    ):
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Content-Type": "application/json",
        }
        self._publisher = publisher
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout
        )
        self._client.headers.update(headers)

    async def aclose(self) -> None:
        """Close the HTTP client if this backend created it."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_messages(self, channel_id: str) -> list[dict]:
        """Message rows of a conversation, oldest first."""
        try:
            response = await self._client.get(
                f"{REST_PREFIX}/messages",
                params={
                    "select": HISTORY_SELECT,
                    "channel_id": f"eq.{channel_id}",
                    "order": "created_at.asc",
                },
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise FetchFailure(f"Failed to load messages for {channel_id}: {e}") from e

    async def send_message(
        self,
        channel_id: str,
        sender_id: str,
        content: str,
        attachments: list[Attachment] | None = None,
    ) -> dict:
        """Insert the message row, then its attachment rows."""
        attachments = attachments or []
        if not content and not attachments:
            raise SendFailure("Message must have content or attachments")

        try:
            response = await self._client.post(
                f"{REST_PREFIX}/messages",
                json={"channel_id": channel_id, "sender_id": sender_id, "content": content},
                headers={"Prefer": "return=representation"},
            )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SendFailure(f"Failed to send message: {e}") from e

        record = rows[0] if isinstance(rows, list) and rows else rows
        if not isinstance(record, dict) or "id" not in record:
            raise SendFailure("Send response did not include the inserted row")

        if attachments:
            try:
                response = await self._client.post(
                    f"{REST_PREFIX}/message_attachments",
                    json=[
                        {
                            "message_id": record["id"],
                            "file_url": a.url,
                            "file_type": a.type,
                            "file_name": a.name,
                            "file_size": a.size,
                        }
                        for a in attachments
                    ],
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                # The message row exists; a retry would duplicate it
                logger.error(
                    "Message sent but attachments failed to save: %s",
                    e,
                    extra=log_context(channel_id=channel_id, message_id=record["id"]),
                )
            else:
                record = {**record, "attachments": [a.to_dict() for a in attachments]}

        if self._publisher:
            try:
                await self._publisher.publish(record)
            except Exception as e:
                logger.error("Realtime publish failed: %s", e, exc_info=True)

        return record

    async def delete_message(self, message_id: str) -> None:
        """Delete a message by id."""
        try:
            response = await self._client.delete(
                f"{REST_PREFIX}/messages",
                params={"id": f"eq.{message_id}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeleteFailure(f"Failed to delete message {message_id}: {e}") from e

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Conversations of a user via the display-name RPC."""
        try:
            response = await self._client.post(
                f"{REST_PREFIX}/rpc/get_user_conversations_with_display_name",
                json={"p_user_id": user_id},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise FetchFailure(f"Failed to load conversations: {e}") from e

        return parse_conversations(payload or [])
