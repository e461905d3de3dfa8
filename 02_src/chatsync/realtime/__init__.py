"""Realtime delivery: in-process hub and the conversation listener."""

from .hub import RealtimeHub, Subscription
from .listener import RealtimeListener

__all__ = ["RealtimeHub", "RealtimeListener", "Subscription"]
