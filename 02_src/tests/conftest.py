"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chatsync.models import (  # noqa: E402
    ConfirmedMessage,
    Conversation,
    Participant,
    PendingMessage,
)

T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

VIEWER_ID = "user_me"
OTHER_ID = "user_bob"


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from chatsync.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def hub():
    """Create in-process realtime hub."""
    from chatsync.realtime import RealtimeHub

    return RealtimeHub()


@pytest.fixture
def tracker(storage):
    """Create Tracker writing to storage."""
    from chatsync.tracker import Tracker

    return Tracker(storage)


@pytest.fixture
def notifier():
    from chatsync.notices import Notifier

    return Notifier()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def fake_backend():
    """Create mock backend with an empty history."""
    backend = Mock()
    backend.fetch_messages = AsyncMock(return_value=[])
    backend.send_message = AsyncMock(return_value={})
    backend.delete_message = AsyncMock(return_value=None)
    backend.list_conversations = AsyncMock(return_value=[])
    return backend


@pytest.fixture
def conversation():
    """Direct conversation between the viewer and Bob."""
    return Conversation(
        id="chan-1",
        participants=[
            Participant(user_id=VIEWER_ID, display_name="Me"),
            Participant(user_id=OTHER_ID, display_name="Bob", avatar_url="B"),
        ],
    )


@pytest.fixture
def other_conversation():
    return Conversation(
        id="chan-2",
        name="Ops",
        is_group=True,
        participants=[
            Participant(user_id=VIEWER_ID, display_name="Me"),
            Participant(user_id="user_carol", display_name="Carol"),
        ],
    )


@pytest.fixture
def confirmed():
    """Factory for confirmed messages at T0 + ``at`` seconds."""

    def make(
        message_id: str,
        content: str = "hello",
        sender_id: str = OTHER_ID,
        at: float = 0.0,
        channel_id: str = "chan-1",
    ) -> ConfirmedMessage:
        return ConfirmedMessage(
            id=message_id,
            channel_id=channel_id,
            sender_id=sender_id,
            content=content,
            timestamp=T0 + timedelta(seconds=at),
        )

    return make


@pytest.fixture
def pending():
    """Factory for pending messages at T0 + ``at`` seconds."""

    def make(
        message_id: str = "temp-1",
        content: str = "hello",
        sender_id: str = VIEWER_ID,
        at: float = 0.0,
        channel_id: str = "chan-1",
    ) -> PendingMessage:
        return PendingMessage(
            id=message_id,
            channel_id=channel_id,
            sender_id=sender_id,
            content=content,
            timestamp=T0 + timedelta(seconds=at),
        )

    return make


@pytest.fixture
def row():
    """Factory for raw backend rows at T0 + ``at`` seconds."""

    def make(
        message_id: str,
        content: str = "hello",
        sender_id: str = OTHER_ID,
        at: float = 0.0,
        channel_id: str = "chan-1",
        **extra,
    ) -> dict:
        return {
            "id": message_id,
            "channel_id": channel_id,
            "sender_id": sender_id,
            "content": content,
            "created_at": (T0 + timedelta(seconds=at)).isoformat(),
            **extra,
        }

    return make


@pytest.fixture
def view(fake_backend, hub, notifier, tracker, clock):
    """ConversationView for the viewer over the mock backend."""
    from chatsync.conversation import ConversationView

    return ConversationView(
        viewer_id=VIEWER_ID,
        backend=fake_backend,
        realtime=hub,
        notifier=notifier,
        tracker=tracker,
        clock=clock,
    )
