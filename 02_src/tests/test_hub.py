"""Tests for RealtimeHub."""


class TestHubSubscribe:
    """Tests for subscriptions."""

    async def test_subscribe(self, hub):
        async def handler(record):
            pass

        subscription = await hub.subscribe("chan-1", handler)

        assert subscription.channel_id == "chan-1"
        assert subscription.active
        assert hub.subscriber_count("chan-1") == 1

    async def test_unsubscribe_is_idempotent(self, hub):
        async def handler(record):
            pass

        subscription = await hub.subscribe("chan-1", handler)
        await subscription.unsubscribe()
        await subscription.unsubscribe()

        assert not subscription.active
        assert hub.subscriber_count() == 0


class TestHubPublish:
    """Tests for delivery."""

    async def test_publish_scoped_to_channel(self, hub):
        calls = []

        async def on_one(record):
            calls.append(("one", record["id"]))

        async def on_two(record):
            calls.append(("two", record["id"]))

        await hub.subscribe("chan-1", on_one)
        await hub.subscribe("chan-2", on_two)

        delivered = await hub.publish({"id": "m1", "channel_id": "chan-1"})

        assert delivered == 1
        assert calls == [("one", "m1")]

    async def test_publish_without_subscribers(self, hub):
        assert await hub.publish({"id": "m1", "channel_id": "nobody"}) == 0

    async def test_failing_handler_isolated(self, hub):
        """Test that one failing handler does not block the others."""
        calls = []

        async def broken(record):
            raise RuntimeError("handler bug")

        async def healthy(record):
            calls.append(record["id"])

        await hub.subscribe("chan-1", broken)
        await hub.subscribe("chan-1", healthy)

        assert await hub.publish({"id": "m1", "channel_id": "chan-1"}) == 2
        assert calls == ["m1"]

    async def test_unsubscribed_handler_not_called(self, hub):
        calls = []

        async def handler(record):
            calls.append(record)

        subscription = await hub.subscribe("chan-1", handler)
        await subscription.unsubscribe()
        await hub.publish({"id": "m1", "channel_id": "chan-1"})

        assert calls == []
