"""Tracker implementation for recording reconciliation TraceEvents."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..logging_config import get_logger
from ..models import TraceEvent

logger = get_logger(__name__)


class ITraceStore(Protocol):
    """Where trace events are persisted."""

    async def save_trace_event(self, event: TraceEvent) -> None:
        ...


class ITracker(Protocol):
    """Creating TraceEvents from direct calls."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save it."""
        ...


class Tracker:
    """Records TraceEvents for the debug panel.

    A failing trace store is logged and otherwise ignored: observability must
    not break message reconciliation.
    """

    def __init__(self, storage: ITraceStore):
        self._storage = storage

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        try:
            await self._storage.save_trace_event(trace_event)
        except Exception as e:
            logger.warning("Failed to save trace event %s: %s", event_type, e)


class NullTracker:
    """Tracker that records nothing (library use without storage)."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        return
