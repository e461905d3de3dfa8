"""User-visible transient notices."""

from datetime import datetime, timezone
from typing import Protocol

from .logging_config import get_logger
from .models import Notice, NoticeLevel

logger = get_logger(__name__)


class INotifier(Protocol):
    """Channel for transient notices (toasts)."""

    def notify(self, level: NoticeLevel, text: str) -> None:
        """Show a notice to the viewer."""
        ...


class Notifier:
    """Keeps the most recent notices for the UI to drain, and logs them."""

    def __init__(self, max_notices: int = 50):
        if max_notices < 1:
            raise ValueError(f"max_notices must be at least 1, got {max_notices}")
        self._max_notices = max_notices
        self._notices: list[Notice] = []

    def notify(self, level: NoticeLevel, text: str) -> None:
        notice = Notice(level=level, text=text, timestamp=datetime.now(timezone.utc))
        self._notices.append(notice)
        del self._notices[: -self._max_notices]

        if level == NoticeLevel.ERROR:
            logger.error("Notice: %s", text)
        else:
            logger.info("Notice: %s", text)

    def get_all(self) -> list[Notice]:
        return self._notices.copy()

    def drain(self) -> list[Notice]:
        """Return and forget all pending notices."""
        notices, self._notices = self._notices, []
        return notices
