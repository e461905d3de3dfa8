"""Trace events and view state for the debug panel."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...models import TraceEvent


class TraceEventResponse(BaseModel):
    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_event(cls, event: TraceEvent) -> "TraceEventResponse":
        return cls(
            id=event.id,
            event_type=event.event_type,
            actor=event.actor,
            data=event.data,
            timestamp=event.timestamp,
        )


class ViewSnapshotResponse(BaseModel):
    """Reconciliation state of one viewer's open conversation."""

    viewer_id: str | None
    active_channel_id: str | None
    is_mounted: bool
    loading: bool
    error: str | None
    generation: int
    has_fetched_once: bool
    last_fetch_at: str | None
    store_count: int
    overlay_count: int
    pending_ids: list[str]
    sends_in_flight: int


def _parse_after(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid after timestamp format")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def create_observability_router(app: Application) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp; naive means UTC"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="Comma-separated event types"),
        actor: str | None = Query(None, description="e.g. message_store, send_coordinator"),
        channel_id: str | None = Query(None, description="Only events of this channel"),
    ) -> list[TraceEventResponse]:
        """Trace events, oldest first, optionally narrowed to one channel."""
        event_types = [t.strip() for t in event_type.split(",") if t.strip()] if event_type else None
        events = await app.storage.get_trace_events(
            after=_parse_after(after) if after else None,
            event_types=event_types,
            actor=actor,
            limit=limit,
        )
        if channel_id is not None:
            events = [e for e in events if e.data.get("channel_id") == channel_id]
        return [TraceEventResponse.from_event(e) for e in events]

    @router.get("/users/{user_id}/view/debug", response_model=ViewSnapshotResponse)
    async def get_view_snapshot(user_id: str) -> dict:
        view = app.views.get(user_id)
        if view is None:
            raise HTTPException(status_code=404, detail="View not open")
        return view.snapshot()

    return router
