"""View state and user-visible notice models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass
class ViewState:
    """Mutable state of one mounted conversation view.

    ``generation`` increases on every conversation switch and on teardown;
    asynchronous results captured under an older generation are discarded.
    """

    active_channel_id: str | None = None
    is_mounted: bool = True
    loading: bool = False
    error: str | None = None
    last_fetch_at: datetime | None = None
    has_fetched_once: bool = False
    generation: int = 0
    draft: str = ""

    def is_current(self, channel_id: str | None, generation: int) -> bool:
        """True if a result for (channel_id, generation) may still be applied."""
        return (
            self.is_mounted
            and channel_id is not None
            and self.active_channel_id == channel_id
            and self.generation == generation
        )


class NoticeLevel(str, Enum):
    """Severity of a user-visible notice."""

    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass
class Notice:
    """A transient notice shown to the viewer (toast)."""

    level: NoticeLevel
    text: str
    timestamp: datetime
