"""
Validation of raw backend rows into message models.

History fetches and realtime inserts both deliver loosely-shaped rows. They
are validated here once, at the boundary, so the reconciler only ever sees
``ConfirmedMessage`` instances.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from ..errors import MalformedPayload
from ..logging_config import get_logger
from ..models import (
    Attachment,
    ConfirmedMessage,
    Conversation,
    Participant,
    SenderProfile,
)

logger = get_logger(__name__)


class AttachmentRecord(BaseModel):
    """Attachment row; accepts both API and ``message_attachments`` column names."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(..., validation_alias=AliasChoices("url", "file_url"))
    type: str = Field("", validation_alias=AliasChoices("type", "file_type"))
    name: str = Field("", validation_alias=AliasChoices("name", "file_name"))
    size: Optional[int] = Field(None, validation_alias=AliasChoices("size", "file_size"))


class SenderRecord(BaseModel):
    """Sender profile embedded in history rows."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    avatar: str = ""
    email: str = ""


class MessageRecord(BaseModel):
    """
    A message row as delivered by history fetch or a realtime insert.

    Validates:
    - id, channel_id, sender_id: present (numbers are coerced to strings)
    - created_at: ISO-8601 timestamp (``timestamp`` accepted as alias)
    - content: may be null when attachments are present
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    channel_id: str
    sender_id: str
    content: str = ""
    created_at: datetime = Field(
        ..., validation_alias=AliasChoices("created_at", "timestamp")
    )
    attachments: list[AttachmentRecord] = Field(default_factory=list)
    sender: Optional[SenderRecord] = None

    @model_validator(mode="before")
    @classmethod
    def fill_sender_id(cls, data: Any) -> Any:
        """Take sender_id from an embedded sender object when it is missing."""
        if isinstance(data, dict) and not data.get("sender_id"):
            sender = data.get("sender")
            if isinstance(sender, dict) and sender.get("id"):
                data = {**data, "sender_id": sender["id"]}
        return data

    @field_validator("id", "channel_id", "sender_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        """Server ids may be integers; normalize them to strings."""
        if isinstance(v, bool):
            raise ValueError("identifier must be a string or number")
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str) and not v:
            raise ValueError("identifier must not be empty")
        return v

    @field_validator("content", mode="before")
    @classmethod
    def null_content(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("attachments", mode="before")
    @classmethod
    def null_attachments(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps from the database are UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


def parse_message_record(record: Any) -> ConfirmedMessage:
    """Validate one raw row. Raises MalformedPayload."""
    if not isinstance(record, dict):
        raise MalformedPayload(f"Message record must be an object, got {type(record).__name__}")
    try:
        parsed = MessageRecord.model_validate(record)
    except ValidationError as e:
        raise MalformedPayload(f"Invalid message record: {e}") from e

    sender = None
    if parsed.sender:
        sender = SenderProfile(
            id=parsed.sender.id,
            name=parsed.sender.name or "User",
            avatar=parsed.sender.avatar or _initial(parsed.sender.name),
            email=parsed.sender.email,
        )

    return ConfirmedMessage(
        id=parsed.id,
        channel_id=parsed.channel_id,
        sender_id=parsed.sender_id,
        content=parsed.content,
        timestamp=parsed.created_at,
        attachments=[
            Attachment(url=a.url, type=a.type, name=a.name, size=a.size)
            for a in parsed.attachments
        ],
        sender=sender,
    )


def parse_history(payload: Any) -> list[ConfirmedMessage]:
    """Validate a history fetch result.

    A non-list payload raises MalformedPayload. Individual bad rows are
    skipped with a warning so one corrupt row cannot hide the conversation.
    """
    if not isinstance(payload, list):
        raise MalformedPayload(
            f"History must be a list of records, got {type(payload).__name__}"
        )

    messages = []
    for record in payload:
        try:
            messages.append(parse_message_record(record))
        except MalformedPayload as e:
            logger.warning("Skipping malformed history record: %s", e)
    return messages


class ParticipantRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    display_name: Optional[str] = ""
    avatar_url: Optional[str] = ""
    email: Optional[str] = ""
    online: bool = False


class ConversationRecord(BaseModel):
    """Row of the ``get_user_conversations_with_display_name`` RPC."""

    model_config = ConfigDict(extra="ignore")

    channel_id: str = Field(..., validation_alias=AliasChoices("channel_id", "id"))
    channel_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("channel_name", "name")
    )
    is_group: bool = False
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    participants: list[ParticipantRecord] = Field(default_factory=list)

    @field_validator("participants", mode="before")
    @classmethod
    def null_participants(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("unread_count", mode="before")
    @classmethod
    def null_unread(cls, v: Any) -> Any:
        return 0 if v is None else v


def parse_conversations(payload: Any) -> list[Conversation]:
    """Validate a conversation list; bad rows are skipped like history rows."""
    if not isinstance(payload, list):
        raise MalformedPayload(
            f"Conversations must be a list, got {type(payload).__name__}"
        )

    conversations = []
    for row in payload:
        try:
            parsed = ConversationRecord.model_validate(row)
        except ValidationError as e:
            logger.warning("Skipping malformed conversation record: %s", e)
            continue

        last_at = parsed.last_message_at
        if last_at is not None and last_at.tzinfo is None:
            last_at = last_at.replace(tzinfo=timezone.utc)

        conversations.append(
            Conversation(
                id=parsed.channel_id,
                name=parsed.channel_name or None,
                is_group=parsed.is_group,
                participants=[
                    Participant(
                        user_id=p.user_id,
                        display_name=p.display_name or "",
                        avatar_url=p.avatar_url or "",
                        email=p.email or "",
                        online=p.online,
                    )
                    for p in parsed.participants
                ],
                last_message=parsed.last_message,
                last_message_at=last_at,
                unread_count=parsed.unread_count,
            )
        )
    return conversations


def conversation_to_dict(conversation: Conversation, viewer_id: str | None = None) -> dict:
    """Serialize a conversation in the RPC row shape, plus its display name."""
    return {
        "channel_id": conversation.id,
        "channel_name": conversation.name,
        "display_name": conversation.display_name(viewer_id),
        "is_group": conversation.is_group,
        "last_message": conversation.last_message,
        "last_message_at": (
            conversation.last_message_at.isoformat()
            if conversation.last_message_at
            else None
        ),
        "unread_count": conversation.unread_count,
        "participants": [
            {
                "user_id": p.user_id,
                "display_name": p.display_name,
                "avatar_url": p.avatar_url,
                "email": p.email,
                "online": p.online,
            }
            for p in conversation.participants
        ],
    }


def message_to_record(message: ConfirmedMessage) -> dict:
    """Serialize a confirmed message back into the row shape."""
    return {
        "id": message.id,
        "channel_id": message.channel_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "created_at": message.timestamp.isoformat(),
        "attachments": [a.to_dict() for a in message.attachments],
    }


def _initial(name: str) -> str:
    return name[:1].upper() or "U"
