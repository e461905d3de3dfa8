"""Tests for duplicate matching and the merge."""

from datetime import timedelta

from chatsync.reconciliation import (
    find_match,
    is_same_logical_message,
    make_temp_id,
    merge,
)

WINDOW = timedelta(seconds=10)


class TestTempIds:
    """Tests for temporary id generation."""

    def test_prefix(self):
        assert make_temp_id().startswith("temp-")

    def test_rapid_ids_are_distinct(self):
        """Test that ids generated in the same millisecond differ."""
        ids = {make_temp_id() for _ in range(100)}
        assert len(ids) == 100


class TestSameLogicalMessage:
    """Tests for the content + sender + time heuristic."""

    def test_match_within_window(self, pending, confirmed):
        assert is_same_logical_message(
            pending(at=0), confirmed("m1", sender_id="user_me", at=3), WINDOW
        )

    def test_match_at_window_edge(self, pending, confirmed):
        """Test that the window bound is inclusive."""
        assert is_same_logical_message(
            pending(at=0), confirmed("m1", sender_id="user_me", at=10), WINDOW
        )

    def test_confirmed_before_pending_still_matches(self, pending, confirmed):
        """Test that server clock skew in either direction is tolerated."""
        assert is_same_logical_message(
            pending(at=5), confirmed("m1", sender_id="user_me", at=0), WINDOW
        )

    def test_outside_window(self, pending, confirmed):
        assert not is_same_logical_message(
            pending(at=0), confirmed("m1", sender_id="user_me", at=10.5), WINDOW
        )

    def test_different_sender(self, pending, confirmed):
        assert not is_same_logical_message(
            pending(), confirmed("m1", sender_id="user_bob"), WINDOW
        )

    def test_different_content(self, pending, confirmed):
        assert not is_same_logical_message(
            pending(content="hi"), confirmed("m1", content="hey", sender_id="user_me"), WINDOW
        )

    def test_two_server_messages_never_match(self, confirmed):
        """Test that identical confirmed messages stay distinct."""
        a = confirmed("m1", sender_id="user_me")
        b = confirmed("m2", sender_id="user_me")
        assert not is_same_logical_message(a, b, WINDOW)

    def test_pending_against_pending(self, pending):
        assert not is_same_logical_message(pending("temp-1"), pending("temp-2"), WINDOW)

    def test_find_match_by_id(self, pending):
        entry = pending("temp-1")
        assert find_match(entry, [pending("temp-1", content="edited")], WINDOW) is not None

    def test_find_match_none(self, pending, confirmed):
        assert find_match(pending(), [confirmed("m1", content="other")], WINDOW) is None


class TestMerge:
    """Tests for merge()."""

    def test_empty(self):
        assert merge([], []) == []

    def test_pending_replaced_by_confirmed_copy(self, pending, confirmed):
        """Test that only the confirmed copy of a sent message is shown."""
        store = [confirmed("m1", sender_id="user_me", at=2)]
        overlay = [pending(at=0)]

        result = merge(store, overlay)

        assert [m.id for m in result] == ["m1"]

    def test_realtime_copy_supersedes_pending(self, pending, confirmed):
        """Test that a confirmed overlay entry also hides its pending twin."""
        overlay = [pending(at=0), confirmed("m1", sender_id="user_me", at=1)]

        assert [m.id for m in merge([], overlay)] == ["m1"]

    def test_store_wins_on_id_collision(self, confirmed):
        store_copy = confirmed("m1", content="from store")
        overlay_copy = confirmed("m1", content="from realtime")

        result = merge([store_copy], [overlay_copy])

        assert len(result) == 1
        assert result[0] is store_copy

    def test_pending_outside_window_kept(self, pending, confirmed):
        """Test that an old identical message does not hide a new send."""
        store = [confirmed("m1", sender_id="user_me", at=0)]
        overlay = [pending(at=60)]

        assert [m.id for m in merge(store, overlay)] == ["m1", "temp-1"]

    def test_sorted_by_timestamp(self, pending, confirmed):
        store = [confirmed("m2", at=20), confirmed("m1", at=5)]
        overlay = [pending(content="new", at=30), confirmed("m0", at=1)]

        result = merge(store, overlay)

        assert [m.id for m in result] == ["m0", "m1", "m2", "temp-1"]
        assert all(a.timestamp <= b.timestamp for a, b in zip(result, result[1:]))

    def test_ties_keep_store_before_overlay(self, pending, confirmed):
        store = [confirmed("m1", content="a", at=0)]
        overlay = [pending(content="b", at=0)]

        assert [m.id for m in merge(store, overlay)] == ["m1", "temp-1"]

    def test_no_duplicate_ids(self, pending, confirmed):
        store = [confirmed("m1"), confirmed("m2", at=1)]
        overlay = [confirmed("m2", at=1), confirmed("m3", at=2), pending(at=3)]

        ids = [m.id for m in merge(store, overlay)]

        assert len(ids) == len(set(ids))

    def test_idempotent(self, pending, confirmed):
        """Test that merging a merged view with the same overlay changes nothing."""
        store = [confirmed("m1", at=0), confirmed("m2", sender_id="user_me", at=4)]
        overlay = [pending(at=3), pending("temp-2", content="other", at=5)]

        merged = merge(store, overlay)

        assert merge(merged, overlay) == merged
        assert merge(store, overlay) == merged

    def test_inputs_not_mutated(self, pending, confirmed):
        store = [confirmed("m2", at=5), confirmed("m1", at=0)]
        overlay = [pending(at=1)]

        merge(store, overlay)

        assert [m.id for m in store] == ["m2", "m1"]
        assert [m.id for m in overlay] == ["temp-1"]

    def test_one_confirmed_absorbs_identical_pendings(self, pending, confirmed):
        """Test that repeated identical sends collapse onto one confirmation."""
        store = [confirmed("m1", sender_id="user_me", at=1)]
        overlay = [pending("temp-1", at=0), pending("temp-2", at=0.5)]

        assert [m.id for m in merge(store, overlay)] == ["m1"]

    def test_custom_window(self, pending, confirmed):
        store = [confirmed("m1", sender_id="user_me", at=12)]
        overlay = [pending(at=0)]

        assert len(merge(store, overlay, timedelta(seconds=10))) == 2
        assert len(merge(store, overlay, timedelta(seconds=15))) == 1
