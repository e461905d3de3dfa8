"""RealtimeListener implementation."""

from ..backend.base import IRealtimeTransport, ISubscription
from ..backend.records import parse_message_record
from ..config import DEFAULT_POLICY, ReconciliationPolicy
from ..errors import MalformedPayload
from ..logging_config import get_logger, log_context
from ..models import NoticeLevel, ViewState
from ..notices import INotifier
from ..profiles import ProfileDirectory
from ..reconciliation import MessageStore, OptimisticOverlay
from ..tracker import ITracker, NullTracker

logger = get_logger(__name__)


class RealtimeListener:
    """Feeds realtime inserts for the active conversation into the overlay."""

    def __init__(
        self,
        transport: IRealtimeTransport,
        store: MessageStore,
        overlay: OptimisticOverlay,
        state: ViewState,
        profiles: ProfileDirectory,
        notifier: INotifier,
        viewer_id: str | None,
        tracker: ITracker | None = None,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
    ):
        self._transport = transport
        self._store = store
        self._overlay = overlay
        self._state = state
        self._profiles = profiles
        self._notifier = notifier
        self._viewer_id = viewer_id
        self._tracker = tracker or NullTracker()
        self._policy = policy

        self._subscription: ISubscription | None = None

    @property
    def channel_id(self) -> str | None:
        return self._subscription.channel_id if self._subscription else None

    async def start(self, channel_id: str) -> None:
        """Subscribe to inserts of ``channel_id``, releasing any previous one."""
        await self.stop()
        if not self._viewer_id:
            logger.info("No authenticated viewer, realtime not started")
            return
        self._subscription = await self._transport.subscribe(channel_id, self.handle_insert)
        logger.info("Realtime listening", extra=log_context(channel_id=channel_id))

    async def stop(self) -> None:
        """Release the subscription. Local state is reset even if that fails."""
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return
        try:
            await subscription.unsubscribe()
        except Exception as e:
            logger.warning(
                "Unsubscribe failed: %s",
                e,
                extra=log_context(channel_id=subscription.channel_id),
            )

    async def handle_insert(self, payload: dict) -> None:
        """Apply one insert event to the overlay."""
        channel_id = str(payload.get("channel_id", "")) if isinstance(payload, dict) else ""
        ctx = log_context(channel_id=channel_id, message_id=_get(payload, "id"))

        if not self._state.is_mounted or channel_id != self._state.active_channel_id:
            logger.debug("Discarding realtime event for inactive channel", extra=ctx)
            await self._tracker.track(
                event_type="realtime_stale_discarded",
                actor="realtime_listener",
                data={
                    "channel_id": channel_id,
                    "active_channel_id": self._state.active_channel_id,
                },
            )
            return

        try:
            message = parse_message_record(payload)
        except MalformedPayload as e:
            logger.warning("Ignoring malformed realtime event: %s", e, extra=ctx)
            return

        if message.sender is None:
            message.sender = self._profiles.resolve(message.sender_id)

        superseded = self._overlay.remove_matching_pending(
            message, self._policy.realtime_match_window
        )

        if self._store.contains(message.id) or self._overlay.contains(message.id):
            logger.debug("Duplicate realtime delivery skipped", extra=ctx)
            await self._tracker.track(
                event_type="realtime_duplicate_skipped",
                actor="realtime_listener",
                data={"channel_id": channel_id, "message_id": message.id},
            )
            return

        self._overlay.add_confirmed(message)
        self._overlay.reconcile_against(self._store.messages)

        if message.sender_id != self._viewer_id:
            self._notifier.notify(NoticeLevel.SUCCESS, "New message received!")

        logger.debug("Realtime message added, superseding %s", superseded, extra=ctx)
        await self._tracker.track(
            event_type="realtime_message_added",
            actor="realtime_listener",
            data={
                "channel_id": channel_id,
                "message_id": message.id,
                "superseded_pending": superseded,
            },
        )


def _get(payload: object, key: str) -> object:
    return payload.get(key) if isinstance(payload, dict) else None
