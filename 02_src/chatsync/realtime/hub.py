"""In-process realtime hub delivering message inserts per conversation."""

import asyncio
import uuid

from ..backend.base import InsertHandler
from ..logging_config import get_logger

logger = get_logger(__name__)


class Subscription:
    """A handler registered on a hub for one conversation."""

    def __init__(self, hub: "RealtimeHub", channel_id: str, handler: InsertHandler):
        self.id = str(uuid.uuid4())
        self._hub = hub
        self._channel_id = channel_id
        self._handler = handler
        self._active = True

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def active(self) -> bool:
        return self._active

    @property
    def handler(self) -> InsertHandler:
        return self._handler

    async def unsubscribe(self) -> None:
        """Stop delivery. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._hub._remove(self)


class RealtimeHub:
    """In-memory pub/sub for message insert events, keyed by channel_id."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}

    async def subscribe(self, channel_id: str, handler: InsertHandler) -> Subscription:
        """Deliver every insert for ``channel_id`` to ``handler``."""
        subscription = Subscription(self, channel_id, handler)
        self._subscribers.setdefault(channel_id, []).append(subscription)
        logger.debug("Subscribed %s to channel %s", subscription.id, channel_id)
        return subscription

    async def publish(self, record: dict) -> int:
        """Deliver an insert record to the channel's subscribers.

        Returns the number of handlers called. A failing handler is logged
        and does not affect the others.
        """
        channel_id = str(record.get("channel_id", ""))
        subscriptions = [s for s in self._subscribers.get(channel_id, []) if s.active]
        if not subscriptions:
            return 0

        results = await asyncio.gather(
            *[s.handler(dict(record)) for s in subscriptions],
            return_exceptions=True,
        )

        for subscription, result in zip(subscriptions, results):
            if isinstance(result, Exception):
                logger.error(
                    "Error in realtime handler %s: %s", subscription.id, result
                )

        return len(subscriptions)

    def subscriber_count(self, channel_id: str | None = None) -> int:
        if channel_id is not None:
            return len(self._subscribers.get(channel_id, []))
        return sum(len(subs) for subs in self._subscribers.values())

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscribers.get(subscription.channel_id, [])
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscribers.pop(subscription.channel_id, None)
        logger.debug("Unsubscribed %s from channel %s", subscription.id, subscription.channel_id)
