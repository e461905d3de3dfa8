"""Message-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

from ..config import TEMP_ID_PREFIX


class MessageStatus(str, Enum):
    """Lifecycle tag of a displayed message."""

    PENDING = "pending"
    CONFIRMED = "confirmed"


@dataclass
class Attachment:
    """A file attached to a message (image, document, audio)."""

    url: str
    type: str  # MIME type or coarse kind, e.g. "image/png", "image"
    name: str = ""
    size: int | None = None

    def to_dict(self) -> dict:
        return {"url": self.url, "type": self.type, "name": self.name, "size": self.size}


@dataclass
class SenderProfile:
    """Display profile of a message author."""

    id: str
    name: str
    avatar: str
    email: str = ""


@dataclass
class ConfirmedMessage:
    """A message the backend has persisted (server-assigned id)."""

    id: str
    channel_id: str
    sender_id: str
    content: str
    timestamp: datetime
    attachments: list[Attachment] = field(default_factory=list)
    sender: SenderProfile | None = None
    status: MessageStatus = field(default=MessageStatus.CONFIRMED, init=False)


@dataclass
class PendingMessage:
    """A locally-created message awaiting confirmation (temporary id)."""

    id: str
    channel_id: str
    sender_id: str
    content: str
    timestamp: datetime
    attachments: list[Attachment] = field(default_factory=list)
    sender: SenderProfile | None = None
    status: MessageStatus = field(default=MessageStatus.PENDING, init=False)

    def __post_init__(self) -> None:
        if not is_temp_id(self.id):
            raise ValueError(
                f"pending message id must start with {TEMP_ID_PREFIX!r}: {self.id!r}"
            )


Message = Union[PendingMessage, ConfirmedMessage]


def is_temp_id(message_id: object) -> bool:
    """True if the id was generated locally for an unconfirmed message."""
    return str(message_id).startswith(TEMP_ID_PREFIX)
