"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .backend import IBackend, LocalBackend, RestBackend
from .config import ReconciliationPolicy, resolve_db_path
from .conversation import ConversationView
from .logging_config import get_logger
from .models import Conversation
from .realtime import RealtimeHub
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Composition root: builds every collaborator and injects it.

    Uses the local SQLite backend unless a backend URL is configured, in
    which case history, sends and deletes go to the REST backend. Realtime
    delivery is always the in-process hub.
    """

    def __init__(
        self,
        db_path: str | None = None,
        backend_url: str | None = None,
        backend_key: str | None = None,
        policy: ReconciliationPolicy | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._backend_url = (
            os.getenv("CHATSYNC_BACKEND_URL") if backend_url is None else backend_url
        )
        self._backend_key = (
            os.getenv("CHATSYNC_BACKEND_KEY", "") if backend_key is None else backend_key
        )
        self._policy = policy

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._hub: RealtimeHub | None = None
        self._tracker: ITracker | None = None
        self._backend: IBackend | None = None
        self._views: dict[str, ConversationView] = {}

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Policy (fails fast on bad env values)
        if self._policy is None:
            self._policy = ReconciliationPolicy.from_env()

        # 2. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 3. Realtime hub (no dependencies)
        self._hub = RealtimeHub()

        # 4. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 5. Backend (depends on Storage or HTTP, publishes to the hub)
        if self._backend_url:
            self._backend = RestBackend(
                base_url=self._backend_url,
                api_key=self._backend_key,
                publisher=self._hub,
            )
            logger.info("REST backend configured for %s", self._backend_url)
        else:
            self._backend = LocalBackend(self._storage, publisher=self._hub)
            logger.info("Local backend initialized")

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        await self._close_views()
        if isinstance(self._backend, RestBackend):
            await self._backend.aclose()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        # 1. Drop every open view and its subscription
        await self._close_views()

        # 2. Clear storage
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

        logger.info("Reset complete")

    def view_for(self, user_id: str) -> ConversationView:
        """The messages panel of ``user_id``, created on first use."""
        view = self._views.get(user_id)
        if view is None:
            view = ConversationView(
                viewer_id=user_id,
                backend=self.backend,
                realtime=self.hub,
                tracker=self._tracker,
                policy=self.policy,
            )
            self._views[user_id] = view
            logger.info("Conversation view created for %s", user_id)
        return view

    def get_view(self, user_id: str) -> ConversationView | None:
        """The open view of ``user_id``, without creating one."""
        return self._views.get(user_id)

    async def close_view(self, user_id: str) -> bool:
        """Tear down and forget the view of ``user_id``."""
        view = self._views.pop(user_id, None)
        if view is None:
            return False
        await view.close()
        return True

    async def find_conversation(self, user_id: str, channel_id: str) -> Conversation | None:
        """A conversation of ``user_id`` by id, or None if not a member."""
        for conversation in await self.backend.list_conversations(user_id):
            if conversation.id == channel_id:
                return conversation
        return None

    async def _close_views(self) -> None:
        views, self._views = self._views, {}
        for user_id, view in views.items():
            try:
                await view.close()
            except Exception as e:
                logger.error("Failed to close view of %s: %s", user_id, e)

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def backend(self) -> IBackend:
        """Get backend instance."""
        if not self._backend:
            raise RuntimeError("Application not started")
        return self._backend

    @property
    def hub(self) -> RealtimeHub:
        """Get realtime hub instance."""
        if not self._hub:
            raise RuntimeError("Application not started")
        return self._hub

    @property
    def tracker(self) -> ITracker:
        """Get tracker instance."""
        if not self._tracker:
            raise RuntimeError("Application not started")
        return self._tracker

    @property
    def policy(self) -> ReconciliationPolicy:
        if not self._policy:
            raise RuntimeError("Application not started")
        return self._policy

    @property
    def views(self) -> dict[str, ConversationView]:
        return dict(self._views)
