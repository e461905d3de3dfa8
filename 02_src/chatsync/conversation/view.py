"""ConversationView implementation."""

import asyncio
from typing import Protocol

from ..backend.base import IBackend, IRealtimeTransport
from ..config import DEFAULT_POLICY, ReconciliationPolicy
from ..logging_config import get_logger, log_context
from ..models import (
    Attachment,
    Conversation,
    Message,
    NoticeLevel,
    ViewState,
    is_temp_id,
)
from ..notices import INotifier, Notifier
from ..profiles import ProfileDirectory
from ..realtime import RealtimeListener
from ..reconciliation import MessageStore, OptimisticOverlay, merge
from ..reconciliation.store import Clock, utc_now
from ..tracker import ITracker, NullTracker
from .sender import SendCoordinator

logger = get_logger(__name__)


class IConversationView(Protocol):
    """The messages panel of one viewer."""

    async def select_conversation(self, conversation: Conversation) -> None:
        """Switch to a conversation: drop old state, subscribe, load history."""
        ...

    async def send_message(
        self, content: str, attachments: list[Attachment] | None = None
    ) -> Message | None:
        """Optimistically send a message to the active conversation."""
        ...

    async def delete_message(self, message_id: str) -> bool:
        """Delete a message and refresh the history."""
        ...

    async def refresh(self) -> bool:
        """Reload the active conversation's history."""
        ...

    async def close(self) -> None:
        """Tear down: unsubscribe and discard all state."""
        ...

    @property
    def messages(self) -> list[Message]:
        """Merged, ordered, deduplicated messages for display."""
        ...


class ConversationView:
    """Composes store, overlay, listener and sender for one viewer."""

    def __init__(
        self,
        viewer_id: str | None,
        backend: IBackend,
        realtime: IRealtimeTransport,
        notifier: INotifier | None = None,
        tracker: ITracker | None = None,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
        clock: Clock = utc_now,
    ):
        self._viewer_id = viewer_id
        self._backend = backend
        self._notifier = notifier or Notifier()
        self._tracker = tracker or NullTracker()
        self._policy = policy

        self.state = ViewState()
        self.conversation: Conversation | None = None
        self.profiles = ProfileDirectory()
        self.overlay = OptimisticOverlay(policy)
        self.store = MessageStore(
            backend=backend,
            overlay=self.overlay,
            state=self.state,
            profiles=self.profiles,
            notifier=self._notifier,
            tracker=self._tracker,
            policy=policy,
            clock=clock,
        )
        self.listener = RealtimeListener(
            transport=realtime,
            store=self.store,
            overlay=self.overlay,
            state=self.state,
            profiles=self.profiles,
            notifier=self._notifier,
            viewer_id=viewer_id,
            tracker=self._tracker,
            policy=policy,
        )
        self.sender = SendCoordinator(
            backend=backend,
            overlay=self.overlay,
            state=self.state,
            profiles=self.profiles,
            notifier=self._notifier,
            sender_id=viewer_id,
            tracker=self._tracker,
            clock=clock,
        )

        self._send_tasks: set[asyncio.Task] = set()

    @property
    def viewer_id(self) -> str | None:
        return self._viewer_id

    @property
    def notifier(self) -> INotifier:
        return self._notifier

    @property
    def messages(self) -> list[Message]:
        return merge(
            self.store.messages,
            self.overlay.get_all(),
            self._policy.store_match_window,
        )

    async def select_conversation(self, conversation: Conversation) -> None:
        """Switch to ``conversation``.

        The active channel and generation change before anything is awaited,
        so events and fetches of the previous conversation that complete
        later are discarded by their guards.
        """
        previous = self.state.active_channel_id
        self.conversation = conversation
        self._reset(active_channel_id=conversation.id)
        self.state.is_mounted = True
        self.profiles.set_participants(conversation.participants)

        logger.info(
            "Conversation selected",
            extra=log_context(channel_id=conversation.id, previous=previous),
        )
        await self._tracker.track(
            event_type="conversation_selected",
            actor="conversation_view",
            data={"channel_id": conversation.id, "previous_channel_id": previous},
        )

        await self.listener.start(conversation.id)
        if self._viewer_id:
            await self.store.load(conversation.id)

    async def send_message(
        self, content: str, attachments: list[Attachment] | None = None
    ) -> Message | None:
        """Send and wait for the backend outcome."""
        return await self.sender.send(content, attachments)

    def submit(
        self, content: str, attachments: list[Attachment] | None = None
    ) -> str | None:
        """Show the message now, persist it in the background.

        Returns the temporary id, or None if nothing was sent.
        """
        pending = self.sender.prepare(content, attachments)
        if pending is None:
            return None

        task = asyncio.create_task(self.sender.persist(pending))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)
        return pending.id

    async def send_draft(self, attachments: list[Attachment] | None = None) -> Message | None:
        """Send whatever is in the input field."""
        return await self.send_message(self.state.draft, attachments)

    async def wait_for_sends(self) -> None:
        """Wait until every background send has settled."""
        if self._send_tasks:
            await asyncio.gather(*list(self._send_tasks), return_exceptions=True)

    def can_delete(self, message_id: str) -> bool:
        """True if ``message_id`` is shown in the active conversation and is the viewer's own."""
        message = self.store.get(message_id) or self.overlay.get(message_id)
        return (
            message is not None
            and self._viewer_id is not None
            and message.channel_id == self.state.active_channel_id
            and message.sender_id == self._viewer_id
        )

    async def delete_message(self, message_id: str) -> bool:
        """Delete one of the viewer's messages; temporary ids only leave the overlay."""
        channel_id = self.state.active_channel_id
        if not self.can_delete(message_id):
            logger.warning(
                "Refusing to delete %s",
                message_id,
                extra=log_context(channel_id=channel_id, viewer_id=self._viewer_id),
            )
            self._notifier.notify(NoticeLevel.ERROR, "Cannot delete message")
            await self._tracker.track(
                event_type="delete_rejected",
                actor="conversation_view",
                data={"channel_id": channel_id, "message_id": message_id},
            )
            return False

        if is_temp_id(message_id):
            return self.overlay.remove(message_id)

        try:
            await self._backend.delete_message(message_id)
        except Exception as e:
            logger.error(
                "Delete failed for %s: %s",
                message_id,
                e,
                extra=log_context(channel_id=channel_id),
            )
            self._notifier.notify(NoticeLevel.ERROR, "Failed to delete message")
            return False

        self.overlay.remove(message_id)
        await self._tracker.track(
            event_type="message_deleted",
            actor="conversation_view",
            data={"channel_id": channel_id, "message_id": message_id},
        )
        await self.refresh()
        return True

    async def refresh(self) -> bool:
        """Store refetch for the active conversation."""
        if not self.state.active_channel_id or not self.state.is_mounted:
            return False
        return await self.store.load(self.state.active_channel_id)

    async def close(self) -> None:
        """Unmount: cancel background sends, release the subscription and discard all state."""
        channel_id = self.state.active_channel_id
        self.state.is_mounted = False
        self._reset(active_channel_id=None)
        self.conversation = None

        tasks = list(self._send_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(
                "Cancelled %d background sends", len(tasks), extra=log_context(channel_id=channel_id)
            )

        await self.listener.stop()
        logger.info("Conversation view closed", extra=log_context(channel_id=channel_id))

    def snapshot(self) -> dict:
        """Debug view of the state machine."""
        return {
            "viewer_id": self._viewer_id,
            "active_channel_id": self.state.active_channel_id,
            "is_mounted": self.state.is_mounted,
            "loading": self.state.loading,
            "error": self.state.error,
            "generation": self.state.generation,
            "has_fetched_once": self.state.has_fetched_once,
            "last_fetch_at": (
                self.state.last_fetch_at.isoformat() if self.state.last_fetch_at else None
            ),
            "store_count": len(self.store.messages),
            "overlay_count": len(self.overlay),
            "pending_ids": [m.id for m in self.overlay.get_pending()],
            "sends_in_flight": len(self._send_tasks),
        }

    def _reset(self, active_channel_id: str | None) -> None:
        self.state.active_channel_id = active_channel_id
        self.state.generation += 1
        self.state.error = None
        self.state.last_fetch_at = None
        self.state.has_fetched_once = False
        self.state.draft = ""
        self.overlay.clear()
        self.store.clear()
        self.profiles.clear()
