"""OptimisticOverlay implementation."""

from datetime import datetime, timedelta

from ..config import DEFAULT_POLICY, ReconciliationPolicy
from ..logging_config import get_logger
from ..models import ConfirmedMessage, Message, PendingMessage, is_temp_id
from .matching import find_match, is_same_logical_message

logger = get_logger(__name__)


class OptimisticOverlay:
    """Client-only messages not yet guaranteed to be in the MessageStore.

    Holds pending sends (temp ids) and realtime inserts that arrived after
    the last store load.
    """

    def __init__(self, policy: ReconciliationPolicy = DEFAULT_POLICY):
        self._policy = policy
        self._messages: list[Message] = []

    def add_pending(self, message: PendingMessage) -> str:
        """Append a pending message; return its temporary id."""
        if not is_temp_id(message.id):
            raise ValueError(f"Not a temporary id: {message.id}")
        self._messages.append(message)
        return message.id

    def add_confirmed(self, message: ConfirmedMessage) -> bool:
        """Append a realtime-delivered message unless its id is already held."""
        if self.contains(message.id):
            return False
        self._messages.append(message)
        return True

    def remove_pending(self, temp_id: str) -> bool:
        """Remove a pending message by temporary id (send failure)."""
        if not is_temp_id(temp_id):
            return False
        return self.remove(temp_id)

    def remove(self, message_id: str) -> bool:
        """Remove any entry by id. Returns True if something was removed."""
        before = len(self._messages)
        self._messages = [m for m in self._messages if m.id != message_id]
        return len(self._messages) != before

    def remove_matching_pending(
        self, confirmed: Message, window: timedelta | None = None
    ) -> list[str]:
        """Drop pending entries that ``confirmed`` supersedes."""
        if window is None:
            window = self._policy.realtime_match_window

        removed = [
            m.id
            for m in self._messages
            if is_same_logical_message(m, confirmed, window)
        ]
        if removed:
            self._messages = [m for m in self._messages if m.id not in removed]
        return removed

    def reconcile_against(self, store_messages: list[Message]) -> list[str]:
        """Drop entries superseded by the store (same id, or heuristic match)."""
        window = self._policy.store_match_window
        store_ids = {m.id for m in store_messages}

        kept: list[Message] = []
        removed: list[str] = []
        for msg in self._messages:
            if msg.id in store_ids:
                removed.append(msg.id)
            elif is_temp_id(msg.id) and find_match(msg, store_messages, window):
                removed.append(msg.id)
            else:
                kept.append(msg)

        self._messages = kept
        if removed:
            logger.debug("Overlay reconciled %d entries: %s", len(removed), removed)
        return removed

    def purge_stale(
        self, now: datetime, cutoff: timedelta | None = None
    ) -> list[str]:
        """Drop entries older than ``cutoff`` relative to ``now``."""
        if cutoff is None:
            cutoff = self._policy.stale_cutoff

        removed = [m.id for m in self._messages if now - m.timestamp > cutoff]
        if removed:
            self._messages = [m for m in self._messages if m.id not in removed]
            logger.debug("Overlay purged %d stale entries: %s", len(removed), removed)
        return removed

    def contains(self, message_id: str) -> bool:
        return any(m.id == message_id for m in self._messages)

    def get(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def get_all(self) -> list[Message]:
        """Get all overlay entries in insertion order."""
        return self._messages.copy()

    def get_pending(self) -> list[Message]:
        return [m for m in self._messages if is_temp_id(m.id)]

    def clear(self) -> None:
        """Clear the overlay (conversation switch)."""
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
