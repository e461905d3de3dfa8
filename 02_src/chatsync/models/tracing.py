"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single reconciliation event for the debug panel."""

    id: str
    event_type: str  # e.g. "pending_added", "realtime_stale_discarded"
    actor: str  # component that recorded it
    data: dict  # self-contained data for display
    timestamp: datetime
