"""Tests for Tracker, Notifier and ProfileDirectory."""

from unittest.mock import AsyncMock, Mock

import pytest

from chatsync.models import NoticeLevel, Participant, SenderProfile
from chatsync.notices import Notifier
from chatsync.profiles import ProfileDirectory
from chatsync.tracker import NullTracker, Tracker


class TestTracker:
    """Tests for trace event recording."""

    async def test_track_saves_event(self, tracker, storage):
        await tracker.track("pending_added", "send_coordinator", {"temp_id": "temp-1"})

        events = await storage.get_trace_events()

        assert len(events) == 1
        assert events[0].event_type == "pending_added"
        assert events[0].actor == "send_coordinator"
        assert events[0].data == {"temp_id": "temp-1"}

    async def test_storage_failure_not_raised(self):
        """Test that a broken trace store does not break the caller."""
        store = Mock()
        store.save_trace_event = AsyncMock(side_effect=RuntimeError("locked"))

        await Tracker(store).track("send_failed", "send_coordinator", {})

        store.save_trace_event.assert_awaited_once()

    async def test_null_tracker(self):
        await NullTracker().track("anything", "anyone", {})


class TestNotifier:
    """Tests for the notice channel."""

    def test_notify_and_drain(self):
        notifier = Notifier()
        notifier.notify(NoticeLevel.ERROR, "Failed to send message")

        drained = notifier.drain()

        assert [(n.level, n.text) for n in drained] == [
            (NoticeLevel.ERROR, "Failed to send message")
        ]
        assert notifier.get_all() == []

    def test_keeps_most_recent(self):
        notifier = Notifier(max_notices=2)
        for text in ("a", "b", "c"):
            notifier.notify(NoticeLevel.INFO, text)

        assert [n.text for n in notifier.get_all()] == ["b", "c"]

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            Notifier(max_notices=0)


class TestProfileDirectory:
    """Tests for sender profile resolution."""

    def test_participant_profile(self):
        directory = ProfileDirectory()
        directory.set_participants(
            [Participant(user_id="u1", display_name="ann", email="ann@example.com")]
        )

        profile = directory.resolve("u1")

        assert profile.name == "ann"
        assert profile.avatar == "A"
        assert profile.email == "ann@example.com"

    def test_placeholder(self):
        profile = ProfileDirectory().resolve("xavier")

        assert profile == SenderProfile(id="xavier", name="Unknown User", avatar="X")

    def test_learned_profile_does_not_override_participant(self, confirmed):
        directory = ProfileDirectory()
        directory.set_participants([Participant(user_id="user_bob", display_name="Bob")])
        message = confirmed("m1")
        message.sender = SenderProfile(id="user_bob", name="bob (old)", avatar="b")

        directory.learn_from_messages([message])

        assert directory.resolve("user_bob").name == "Bob"

    def test_clear(self):
        directory = ProfileDirectory()
        directory.set_participants([Participant(user_id="u1", display_name="Ann")])
        directory.clear()

        assert directory.get("u1") is None
