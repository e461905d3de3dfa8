"""Tests for RealtimeListener."""

from unittest.mock import AsyncMock, Mock

import pytest

from chatsync.models import MessageStatus, NoticeLevel, ViewState
from chatsync.profiles import ProfileDirectory
from chatsync.realtime import RealtimeListener
from chatsync.reconciliation import MessageStore, OptimisticOverlay


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
def store(fake_backend, overlay, state, profiles, notifier, clock):
    return MessageStore(
        backend=fake_backend,
        overlay=overlay,
        state=state,
        profiles=profiles,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def listener(hub, store, overlay, state, profiles, notifier, tracker):
    return RealtimeListener(
        transport=hub,
        store=store,
        overlay=overlay,
        state=state,
        profiles=profiles,
        notifier=notifier,
        viewer_id="user_me",
        tracker=tracker,
    )


class TestListenerSubscription:
    """Tests for subscribe/unsubscribe."""

    async def test_start_subscribes(self, listener, hub):
        await listener.start("chan-1")

        assert listener.channel_id == "chan-1"
        assert hub.subscriber_count("chan-1") == 1

    async def test_restart_releases_previous(self, listener, hub):
        """Test that switching channels leaves one subscription."""
        await listener.start("chan-1")
        await listener.start("chan-2")

        assert hub.subscriber_count("chan-1") == 0
        assert hub.subscriber_count("chan-2") == 1

    async def test_stop_is_idempotent(self, listener, hub):
        await listener.start("chan-1")
        await listener.stop()
        await listener.stop()

        assert listener.channel_id is None
        assert hub.subscriber_count() == 0

    async def test_no_viewer_no_subscription(self, hub, store, overlay, state, profiles, notifier):
        listener = RealtimeListener(
            transport=hub,
            store=store,
            overlay=overlay,
            state=state,
            profiles=profiles,
            notifier=notifier,
            viewer_id=None,
        )

        await listener.start("chan-1")

        assert hub.subscriber_count() == 0

    async def test_unsubscribe_failure_still_releases(self, store, overlay, state, profiles, notifier):
        """Test that a failing unsubscribe does not leave a dangling handle."""
        subscription = Mock()
        subscription.channel_id = "chan-1"
        subscription.unsubscribe = AsyncMock(side_effect=RuntimeError("socket closed"))
        transport = Mock()
        transport.subscribe = AsyncMock(return_value=subscription)

        listener = RealtimeListener(
            transport=transport,
            store=store,
            overlay=overlay,
            state=state,
            profiles=profiles,
            notifier=notifier,
            viewer_id="user_me",
        )
        await listener.start("chan-1")
        await listener.stop()

        assert listener.channel_id is None


class TestListenerInserts:
    """Tests for insert handling."""

    async def test_insert_added_to_overlay(self, listener, hub, overlay, notifier, row):
        await listener.start("chan-1")

        await hub.publish(row("m1", content="hi there"))

        entries = overlay.get_all()
        assert [m.id for m in entries] == ["m1"]
        assert entries[0].status == MessageStatus.CONFIRMED
        assert entries[0].sender.name == "Bob"
        assert [(n.level, n.text) for n in notifier.get_all()] == [
            (NoticeLevel.SUCCESS, "New message received!")
        ]

    async def test_own_insert_does_not_notify(self, listener, hub, notifier, row):
        await listener.start("chan-1")

        await hub.publish(row("m1", sender_id="user_me"))

        assert notifier.get_all() == []

    async def test_unknown_sender_placeholder(self, listener, overlay, row):
        await listener.handle_insert(row("m1", sender_id="ghost"))

        sender = overlay.get_all()[0].sender
        assert sender.name == "Unknown User"
        assert sender.avatar == "G"

    async def test_insert_supersedes_pending(self, listener, overlay, pending, row):
        """Test that the realtime echo of a send replaces its pending entry."""
        overlay.add_pending(pending(content="hi", at=0))

        await listener.handle_insert(row("m1", content="hi", sender_id="user_me", at=12))

        assert [m.id for m in overlay.get_all()] == ["m1"]

    async def test_other_channel_discarded(self, listener, overlay, storage, row):
        """Test that an event for a channel no longer shown is dropped."""
        await listener.handle_insert(row("m1", channel_id="chan-2"))

        assert len(overlay) == 0
        events = await storage.get_trace_events(event_types=["realtime_stale_discarded"])
        assert len(events) == 1

    async def test_unmounted_discarded(self, listener, overlay, state, row):
        state.is_mounted = False

        await listener.handle_insert(row("m1"))

        assert len(overlay) == 0

    async def test_duplicate_delivery_skipped(self, listener, overlay, storage, row):
        await listener.handle_insert(row("m1"))
        await listener.handle_insert(row("m1"))

        assert len(overlay) == 1
        events = await storage.get_trace_events(event_types=["realtime_duplicate_skipped"])
        assert len(events) == 1

    async def test_already_in_store_skipped(self, listener, store, overlay, confirmed, row):
        store.replace([confirmed("m1")])

        await listener.handle_insert(row("m1"))

        assert len(overlay) == 0

    async def test_malformed_event_ignored(self, listener, overlay):
        await listener.handle_insert({"channel_id": "chan-1", "content": "no id"})

        assert len(overlay) == 0

    async def test_numeric_id_normalized(self, listener, overlay, row):
        await listener.handle_insert(row(42))

        assert overlay.contains("42")
