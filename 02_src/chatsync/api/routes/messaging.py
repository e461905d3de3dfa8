"""Messaging API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...backend import LocalBackend, conversation_to_dict
from ...errors import ChatSyncError, FetchFailure, SendFailure
from ...conversation import ConversationView
from ...models import Attachment, Conversation, Message, Participant


class AttachmentModel(BaseModel):
    """Attachment as sent by the client."""

    url: str
    type: str
    name: str = ""
    size: int | None = None

    def to_attachment(self) -> Attachment:
        return Attachment(url=self.url, type=self.type, name=self.name, size=self.size)


class ParticipantModel(BaseModel):
    user_id: str
    display_name: str = ""
    avatar_url: str = ""
    email: str = ""
    online: bool = False


class ConversationRequest(BaseModel):
    """Request model for creating or updating a conversation."""

    channel_id: str = Field(..., min_length=1)
    name: str | None = None
    is_group: bool = False
    participants: list[ParticipantModel] = Field(..., min_length=1)


class SelectRequest(BaseModel):
    channel_id: str


class ContentRequest(BaseModel):
    """Message body: text, attachments or both."""

    content: str = ""
    attachments: list[AttachmentModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def require_content_or_attachments(self) -> "ContentRequest":
        if not self.content.strip() and not self.attachments:
            raise ValueError("Message must have content or attachments")
        return self


class SendRequest(ContentRequest):
    """Request model for an optimistic send from a view."""

    wait: bool = True


class InsertRequest(ContentRequest):
    """Request model for a backend insert on behalf of any participant."""

    sender_id: str


class MessageResponse(BaseModel):
    """Response model for a displayed message."""

    id: str
    channel_id: str
    sender_id: str
    content: str
    timestamp: datetime
    status: str
    attachments: list[AttachmentModel]
    sender: dict[str, Any] | None = None


class ViewResponse(BaseModel):
    """Response model for the messages panel."""

    viewer_id: str
    channel_id: str | None
    loading: bool
    error: str | None
    messages: list[MessageResponse]


class SendResponse(BaseModel):
    temp_id: str
    status: str


class NoticeResponse(BaseModel):
    level: str
    text: str
    timestamp: datetime


def message_payload(message: Message) -> dict:
    """Serialize a displayed message."""
    sender = None
    if message.sender is not None:
        sender = {
            "id": message.sender.id,
            "name": message.sender.name,
            "avatar": message.sender.avatar,
            "email": message.sender.email,
        }
    return {
        "id": message.id,
        "channel_id": message.channel_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "timestamp": message.timestamp,
        "status": message.status.value,
        "attachments": [a.to_dict() for a in message.attachments],
        "sender": sender,
    }


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    def open_view(user_id: str) -> ConversationView:
        view = app.get_view(user_id)
        if view is None:
            raise HTTPException(status_code=404, detail="View not open")
        return view

    def view_payload(user_id: str, view: ConversationView) -> dict:
        return {
            "viewer_id": user_id,
            "channel_id": view.state.active_channel_id,
            "loading": view.state.loading,
            "error": view.state.error,
            "messages": [message_payload(m) for m in view.messages],
        }

    @router.get("/users/{user_id}/conversations")
    async def list_conversations(user_id: str) -> list[dict]:
        """Conversations of a user, most recent activity first."""
        try:
            conversations = await app.backend.list_conversations(user_id)
        except ChatSyncError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return [conversation_to_dict(c, user_id) for c in conversations]

    @router.post("/conversations", status_code=201)
    async def save_conversation(request: ConversationRequest) -> dict:
        """Create or update a conversation in the local backend."""
        if not isinstance(app.backend, LocalBackend):
            raise HTTPException(
                status_code=409, detail="Conversations are managed by the remote backend"
            )
        conversation = Conversation(
            id=request.channel_id,
            name=request.name,
            is_group=request.is_group,
            participants=[Participant(**p.model_dump()) for p in request.participants],
        )
        await app.storage.save_conversation(conversation)
        return conversation_to_dict(conversation)

    @router.post("/users/{user_id}/view/select", response_model=ViewResponse)
    async def select_conversation(user_id: str, request: SelectRequest) -> dict:
        """Open a conversation in the user's view and load its history."""
        try:
            conversation = await app.find_conversation(user_id, request.channel_id)
        except FetchFailure as e:
            raise HTTPException(status_code=502, detail=str(e))
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")

        view = app.view_for(user_id)
        await view.select_conversation(conversation)
        return view_payload(user_id, view)

    @router.get("/users/{user_id}/view/messages", response_model=ViewResponse)
    async def get_messages(user_id: str) -> dict:
        """Merged message list as the user currently sees it."""
        return view_payload(user_id, open_view(user_id))

    @router.post("/users/{user_id}/view/messages", response_model=SendResponse)
    async def send_message(user_id: str, request: SendRequest) -> dict:
        """Optimistic send from the user's view."""
        view = app.get_view(user_id)
        if view is None:
            raise HTTPException(status_code=409, detail="No active conversation")
        attachments = [a.to_attachment() for a in request.attachments]

        if not request.wait:
            temp_id = view.submit(request.content, attachments)
            if temp_id is None:
                raise HTTPException(status_code=409, detail="No active conversation")
            return {"temp_id": temp_id, "status": "pending"}

        pending = view.sender.prepare(request.content, attachments)
        if pending is None:
            raise HTTPException(status_code=409, detail="No active conversation")
        if not await view.sender.persist(pending):
            raise HTTPException(status_code=502, detail="Failed to send message")
        return {"temp_id": pending.id, "status": "sent"}

    @router.delete("/users/{user_id}/view/messages/{message_id}")
    async def delete_message(user_id: str, message_id: str) -> dict:
        """Delete a message and refresh the view."""
        view = open_view(user_id)
        if not view.can_delete(message_id):
            raise HTTPException(status_code=403, detail="Cannot delete message")
        if not await view.delete_message(message_id):
            raise HTTPException(status_code=502, detail="Failed to delete message")
        return {"status": "ok"}

    @router.post("/users/{user_id}/view/refresh", response_model=ViewResponse)
    async def refresh(user_id: str) -> dict:
        """Refetch the active conversation's history."""
        view = open_view(user_id)
        await view.refresh()
        return view_payload(user_id, view)

    @router.post("/users/{user_id}/view/close")
    async def close_view(user_id: str) -> dict:
        """Tear down the user's view."""
        closed = await app.close_view(user_id)
        return {"status": "ok" if closed else "not_open"}

    @router.get("/users/{user_id}/view/notices", response_model=list[NoticeResponse])
    async def drain_notices(user_id: str) -> list[dict]:
        """Notices raised since the last call."""
        notifier = open_view(user_id).notifier
        notices = notifier.drain() if hasattr(notifier, "drain") else []
        return [
            {"level": n.level.value, "text": n.text, "timestamp": n.timestamp}
            for n in notices
        ]

    @router.post("/channels/{channel_id}/messages", status_code=201)
    async def insert_message(channel_id: str, request: InsertRequest) -> dict:
        """Insert a message directly through the backend (as any participant)."""
        try:
            return await app.backend.send_message(
                channel_id,
                request.sender_id,
                request.content,
                [a.to_attachment() for a in request.attachments],
            )
        except SendFailure as e:
            raise HTTPException(status_code=400, detail=str(e))

    return router
