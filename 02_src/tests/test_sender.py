"""Tests for SendCoordinator."""

import pytest

from chatsync.conversation import SendCoordinator
from chatsync.errors import SendFailure
from chatsync.models import Attachment, MessageStatus, NoticeLevel, ViewState
from chatsync.profiles import ProfileDirectory
from chatsync.reconciliation import OptimisticOverlay


@pytest.fixture
def state():
    return ViewState(active_channel_id="chan-1", generation=1)


@pytest.fixture
def overlay():
    return OptimisticOverlay()


@pytest.fixture
def profiles(conversation):
    directory = ProfileDirectory()
    directory.set_participants(conversation.participants)
    return directory


@pytest.fixture
def sender(fake_backend, overlay, state, profiles, notifier, tracker, clock):
    return SendCoordinator(
        backend=fake_backend,
        overlay=overlay,
        state=state,
        profiles=profiles,
        notifier=notifier,
        sender_id="user_me",
        tracker=tracker,
        clock=clock,
    )


class TestPrepare:
    """Tests for input validation and the optimistic entry."""

    def test_prepare_adds_pending(self, sender, overlay, state, clock):
        state.draft = "hello"

        message = sender.prepare("  hello  ")

        assert message.id.startswith("temp-")
        assert message.status == MessageStatus.PENDING
        assert message.content == "hello"
        assert message.timestamp == clock.now
        assert message.sender.name == "Me"
        assert overlay.get_all() == [message]
        assert state.draft == ""

    def test_empty_message_ignored(self, sender, overlay, notifier):
        """Test that blank input sends nothing and shows nothing."""
        assert sender.prepare("   ") is None
        assert len(overlay) == 0
        assert notifier.get_all() == []

    def test_attachment_only(self, sender):
        attachment = Attachment(url="https://files/a.png", type="image")

        message = sender.prepare("", [attachment])

        assert message.content == ""
        assert message.attachments == [attachment]

    def test_no_active_conversation(self, sender, state, overlay, notifier):
        state.active_channel_id = None

        assert sender.prepare("hello") is None
        assert len(overlay) == 0
        assert notifier.get_all()[0].text == "Cannot send message - please try again"

    def test_unknown_self_profile_falls_back(self, fake_backend, overlay, state, notifier):
        coordinator = SendCoordinator(
            backend=fake_backend,
            overlay=overlay,
            state=state,
            profiles=ProfileDirectory(),
            notifier=notifier,
            sender_id="user_me",
        )

        assert coordinator.prepare("hi").sender.name == "You"


class TestPersist:
    """Tests for the backend call and rollback."""

    async def test_success_keeps_pending_until_confirmed(self, sender, overlay, fake_backend, storage):
        message = await sender.send("hello")

        fake_backend.send_message.assert_awaited_once_with("chan-1", "user_me", "hello", [])
        assert overlay.contains(message.id)
        events = await storage.get_trace_events(event_types=["send_succeeded"])
        assert events[0].data["temp_id"] == message.id

    async def test_failure_rolls_back(self, sender, overlay, notifier, fake_backend, storage):
        """Test that a rejected send leaves no trace in the overlay."""
        fake_backend.send_message.side_effect = SendFailure("rejected")

        message = sender.prepare("hello")
        assert overlay.contains(message.id)

        assert not await sender.persist(message)

        assert len(overlay) == 0
        assert [(n.level, n.text) for n in notifier.get_all()] == [
            (NoticeLevel.ERROR, "Failed to send message")
        ]
        events = await storage.get_trace_events(event_types=["send_failed"])
        assert events[0].data["error"] == "rejected"

    async def test_failure_keeps_other_pendings(self, sender, overlay, fake_backend):
        first = sender.prepare("first")
        second = sender.prepare("second")
        fake_backend.send_message.side_effect = SendFailure("rejected")

        await sender.persist(second)

        assert [m.id for m in overlay.get_all()] == [first.id]

    async def test_send_nothing(self, sender, fake_backend):
        assert await sender.send("") is None
        fake_backend.send_message.assert_not_awaited()
