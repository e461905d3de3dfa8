"""Simulated participants posting into a demo conversation.

Messages go through the backend insert route, so they reach an open
conversation view the same way another user's messages would: via realtime,
not via the viewer's own send path.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Protocol

import httpx

from chatsync.logging_config import get_logger, log_context
from chatsync.tracker import ITracker

logger = get_logger(__name__)


@dataclass(frozen=True)
class VirtualUser:
    user_id: str
    name: str


DEFAULT_CHANNEL_ID = "demo-general"
DEFAULT_VIEWER = {"user_id": "user_me", "name": "Me"}
VIRTUAL_USERS = (
    VirtualUser("user_001", "Alice"),
    VirtualUser("user_002", "Bob"),
    VirtualUser("user_003", "Charlie"),
)

# (index into VIRTUAL_USERS, text), posted in order
SCRIPT = (
    (0, "Morning! Is the schedule posted?"),
    (1, "Posted it last night"),
    (2, "Good morning"),
    (0, "Can someone cover Thursday?"),
    (1, "I can take Thursday"),
    (2, "Where are the new intake forms?"),
    (0, "Thanks!"),
    (2, "Found them, never mind"),
)


class ISim(Protocol):
    """Generate realtime traffic from other participants."""

    @property
    def running(self) -> bool:
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


class Sim:
    """Plays SCRIPT into ``channel_id`` with random pauses between lines.

    The conversation (virtual users plus the viewer) is created first, so a
    viewer can select it while the script runs.
    """

    def __init__(
        self,
        api_url: str = "http://localhost:8000",
        channel_id: str = DEFAULT_CHANNEL_ID,
        viewer: dict | None = None,
        tracker: ITracker | None = None,
        delay_range: tuple[float, float] = (1.0, 3.0),
    ):
        self._api_url = api_url
        self._channel_id = channel_id
        self._viewer = viewer or DEFAULT_VIEWER
        self._tracker = tracker
        self._delay_range = delay_range
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    def set_tracker(self, tracker: ITracker) -> None:
        self._tracker = tracker

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._client = httpx.AsyncClient(base_url=self._api_url, timeout=10.0)
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _track(self, event_type: str, data: dict) -> None:
        if self._tracker:
            await self._tracker.track(event_type, "sim", {"channel_id": self._channel_id, **data})

    async def _run_scenario(self) -> None:
        posted = 0
        try:
            await self._ensure_conversation()
            await self._track("sim_started", {"script_length": len(SCRIPT)})

            for user_idx, text in SCRIPT:
                if await self._send_message(VIRTUAL_USERS[user_idx].user_id, text):
                    posted += 1
                await asyncio.sleep(random.uniform(*self._delay_range))
        except httpx.HTTPError as e:
            logger.error("SIM scenario aborted: %s", e, extra=log_context(channel_id=self._channel_id))
        finally:
            await self._track("sim_completed", {"posted": posted})

    async def _ensure_conversation(self) -> None:
        """Create the demo conversation; an existing one is fine."""
        participants = [
            {"user_id": u.user_id, "display_name": u.name, "online": True}
            for u in VIRTUAL_USERS
        ]
        participants.append(
            {"user_id": self._viewer["user_id"], "display_name": self._viewer["name"]}
        )
        response = await self._client.post(
            "/api/conversations",
            json={
                "channel_id": self._channel_id,
                "name": "General",
                "is_group": True,
                "participants": participants,
            },
        )
        if response.status_code not in (200, 201, 409):
            response.raise_for_status()

    async def _send_message(self, user_id: str, text: str) -> bool:
        """Insert ``text`` as ``user_id``. Returns True if the backend stored it."""
        ctx = log_context(channel_id=self._channel_id, sender_id=user_id)
        try:
            response = await self._client.post(
                f"/api/channels/{self._channel_id}/messages",
                json={"sender_id": user_id, "content": text},
            )
        except httpx.HTTPError as e:
            logger.error("SIM: failed to post: %s", e, extra=ctx)
            return False

        if response.status_code != 201:
            logger.error("SIM: insert rejected with %s", response.status_code, extra=ctx)
            return False
        logger.info("SIM: %s", text, extra=ctx)
        return True
