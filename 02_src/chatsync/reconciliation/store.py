"""MessageStore implementation."""

import asyncio
from datetime import datetime, timezone
from typing import Callable

from ..backend.base import IBackend
from ..backend.records import parse_history
from ..config import DEFAULT_POLICY, ReconciliationPolicy
from ..logging_config import get_logger, log_context
from ..models import ConfirmedMessage, NoticeLevel, ViewState
from ..notices import INotifier
from ..profiles import ProfileDirectory
from ..tracker import ITracker, NullTracker
from .overlay import OptimisticOverlay

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageStore:
    """Server-confirmed messages of exactly one active conversation."""

    def __init__(
        self,
        backend: IBackend,
        overlay: OptimisticOverlay,
        state: ViewState,
        profiles: ProfileDirectory,
        notifier: INotifier,
        tracker: ITracker | None = None,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
        clock: Clock = utc_now,
    ):
        self._backend = backend
        self._overlay = overlay
        self._state = state
        self._profiles = profiles
        self._notifier = notifier
        self._tracker = tracker or NullTracker()
        self._policy = policy
        self._clock = clock

        self._messages: list[ConfirmedMessage] = []
        self._loading_generation: int | None = None
        self._inflight: asyncio.Future | None = None
        self._reload_requested = False

    @property
    def messages(self) -> list[ConfirmedMessage]:
        return self._messages.copy()

    def contains(self, message_id: str) -> bool:
        return any(m.id == message_id for m in self._messages)

    def get(self, message_id: str) -> ConfirmedMessage | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    async def load(self, channel_id: str | None = None) -> bool:
        """Fetch the full history of ``channel_id`` and replace the store.

        Returns True if the last fetch replaced the store. A call made while
        a load of the current generation is in flight joins that load and
        makes it fetch once more when it finishes, so the caller always sees
        a snapshot taken after the call. Failures never propagate: the
        last-good contents stay, and an error is surfaced only when there is
        nothing to fall back on.
        """
        channel_id = channel_id or self._state.active_channel_id
        if channel_id is None:
            self.clear()
            return False

        generation = self._state.generation
        if self._loading_generation == generation and self._inflight is not None:
            logger.debug("History load in flight for %s, refetch queued", channel_id)
            self._reload_requested = True
            return await asyncio.shield(self._inflight)

        done: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight = done
        self._loading_generation = generation
        self._state.loading = True
        replaced = False
        try:
            while True:
                self._reload_requested = False
                replaced = await self._fetch(channel_id, generation)
                if not self._reload_requested:
                    break
                if not self._state.is_current(channel_id, generation):
                    break
        finally:
            if self._loading_generation == generation:
                self._loading_generation = None
                self._state.loading = False
            if self._inflight is done:
                self._inflight = None
            if not done.done():
                done.set_result(replaced)
        return replaced

    async def _fetch(self, channel_id: str, generation: int) -> bool:
        ctx = log_context(channel_id=channel_id, generation=generation)
        try:
            raw = await self._backend.fetch_messages(channel_id)
            messages = parse_history(raw)
        except Exception as e:
            if self._state.is_current(channel_id, generation):
                await self._handle_fetch_failure(channel_id, e)
            return False

        if not self._state.is_current(channel_id, generation):
            logger.debug("Discarding history for inactive channel %s", channel_id, extra=ctx)
            await self._tracker.track(
                event_type="history_stale_discarded",
                actor="message_store",
                data={"channel_id": channel_id, "message_count": len(messages)},
            )
            return False

        self._profiles.learn_from_messages(messages)
        removed = self.replace(messages)

        self._state.last_fetch_at = self._clock()
        self._state.has_fetched_once = True
        self._state.error = None

        logger.info("Loaded %d messages", len(messages), extra=ctx)
        await self._tracker.track(
            event_type="history_loaded",
            actor="message_store",
            data={
                "channel_id": channel_id,
                "message_count": len(messages),
                "overlay_removed": removed,
            },
        )
        return True

    def replace(self, messages: list[ConfirmedMessage]) -> list[str]:
        """Swap the held set; purge and reconcile the overlay against it.

        Returns the ids removed from the overlay.
        """
        self._messages = sorted(messages, key=lambda m: m.timestamp)

        removed: list[str] = []
        if self._messages:
            # Entries this old should have round-tripped into the store
            removed += self._overlay.purge_stale(self._clock(), self._policy.stale_cutoff)
        removed += self._overlay.reconcile_against(self._messages)
        return removed

    def clear(self) -> None:
        """Empty the store (conversation switch or teardown)."""
        self._messages = []
        self._loading_generation = None
        self._state.loading = False

    async def _handle_fetch_failure(self, channel_id: str, error: Exception) -> None:
        ctx = log_context(channel_id=channel_id)
        if self._messages:
            logger.warning(
                "History refresh failed, keeping %d cached messages: %s",
                len(self._messages),
                error,
                extra=ctx,
            )
        else:
            logger.error("History load failed: %s", error, exc_info=True, extra=ctx)
            self._state.error = "Failed to load messages"
            self._notifier.notify(NoticeLevel.ERROR, "Failed to load messages")

        await self._tracker.track(
            event_type="history_fetch_failed",
            actor="message_store",
            data={
                "channel_id": channel_id,
                "error": str(error),
                "kept_cached": bool(self._messages),
            },
        )
