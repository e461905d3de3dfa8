"""Conversation-related data models."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Participant:
    """A member of a conversation, with presence."""

    user_id: str
    display_name: str = ""
    avatar_url: str = ""
    email: str = ""
    online: bool = False


@dataclass
class Conversation:
    """A channel the viewer belongs to (direct message or group)."""

    id: str
    name: str | None = None
    is_group: bool = False
    participants: list[Participant] = field(default_factory=list)
    last_message: str | None = None
    last_message_at: datetime | None = None
    unread_count: int = 0

    def display_name(self, viewer_id: str | None = None) -> str:
        """Name to show for this conversation from the viewer's side."""
        if self.name:
            return self.name
        if self.is_group:
            return "Unnamed Group"
        others = [
            p.display_name
            for p in self.participants
            if p.user_id != viewer_id and p.display_name
        ]
        return ", ".join(others) or "Direct Message"
