"""SendCoordinator implementation."""

from ..backend.base import IBackend
from ..logging_config import get_logger, log_context
from ..models import Attachment, NoticeLevel, PendingMessage, ViewState
from ..notices import INotifier
from ..profiles import ProfileDirectory
from ..reconciliation import OptimisticOverlay, make_temp_id
from ..reconciliation.store import Clock, utc_now
from ..tracker import ITracker, NullTracker

logger = get_logger(__name__)


class SendCoordinator:
    """Optimistic send: show the message at once, roll it back on failure."""

    def __init__(
        self,
        backend: IBackend,
        overlay: OptimisticOverlay,
        state: ViewState,
        profiles: ProfileDirectory,
        notifier: INotifier,
        sender_id: str | None,
        tracker: ITracker | None = None,
        clock: Clock = utc_now,
    ):
        self._backend = backend
        self._overlay = overlay
        self._state = state
        self._profiles = profiles
        self._notifier = notifier
        self._sender_id = sender_id
        self._tracker = tracker or NullTracker()
        self._clock = clock

    def prepare(
        self, content: str, attachments: list[Attachment] | None = None
    ) -> PendingMessage | None:
        """Validate input and add the pending entry. No I/O.

        Returns None (and adds nothing) when there is nothing to send or no
        conversation/sender to send it from.
        """
        content = (content or "").strip()
        attachments = list(attachments or [])
        if not content and not attachments:
            return None

        channel_id = self._state.active_channel_id
        if not channel_id or not self._sender_id or not self._state.is_mounted:
            self._notifier.notify(NoticeLevel.ERROR, "Cannot send message - please try again")
            return None

        pending = PendingMessage(
            id=make_temp_id(),
            channel_id=channel_id,
            sender_id=self._sender_id,
            content=content,
            timestamp=self._clock(),
            attachments=attachments,
            sender=self._profiles.resolve(self._sender_id, fallback_name="You"),
        )
        self._overlay.add_pending(pending)
        self._state.draft = ""
        logger.debug(
            "Pending message added",
            extra=log_context(channel_id=channel_id, message_id=pending.id),
        )
        return pending

    async def persist(self, pending: PendingMessage) -> bool:
        """Issue the backend send for a prepared message.

        On success nothing else happens: the confirmed copy arrives through
        realtime or the next store load and reconciles the pending entry
        away. On failure the pending entry is removed by its temporary id.
        """
        ctx = log_context(channel_id=pending.channel_id, message_id=pending.id)
        await self._tracker.track(
            event_type="pending_added",
            actor="send_coordinator",
            data={
                "channel_id": pending.channel_id,
                "temp_id": pending.id,
                "attachment_count": len(pending.attachments),
            },
        )

        try:
            await self._backend.send_message(
                pending.channel_id,
                pending.sender_id,
                pending.content,
                pending.attachments,
            )
        except Exception as e:
            logger.error("Send failed, rolling back %s: %s", pending.id, e, extra=ctx)
            self._overlay.remove_pending(pending.id)
            self._notifier.notify(NoticeLevel.ERROR, "Failed to send message")
            await self._tracker.track(
                event_type="send_failed",
                actor="send_coordinator",
                data={
                    "channel_id": pending.channel_id,
                    "temp_id": pending.id,
                    "error": str(e),
                },
            )
            return False

        logger.info("Message sent", extra=ctx)
        await self._tracker.track(
            event_type="send_succeeded",
            actor="send_coordinator",
            data={"channel_id": pending.channel_id, "temp_id": pending.id},
        )
        return True

    async def send(
        self, content: str, attachments: list[Attachment] | None = None
    ) -> PendingMessage | None:
        """Prepare and persist in one step. Returns the pending message."""
        pending = self.prepare(content, attachments)
        if pending is None:
            return None
        await self.persist(pending)
        return pending
