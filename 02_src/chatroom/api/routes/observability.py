"""Observability API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, Depends, HTTPException, Query

from ...app import Application
from .deps import make_current_profile


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


class RelayStatsResponse(BaseModel):
    connections: int
    online: int
    stored_messages: int


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router (signed-in members only)."""
    router = APIRouter(
        prefix="/api",
        tags=["observability"],
        dependencies=[Depends(make_current_profile(app))],
    )

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="Filter by event type"),
        actor: str | None = Query(None, description="Filter by actor"),
    ) -> list[dict]:
        """Get trace events with optional filters."""
        after_dt = None
        if after:
            try:
                after_dt = datetime.fromisoformat(after)
            except ValueError:
                raise HTTPException(
                    status_code=400, detail="Invalid after timestamp format"
                )

        try:
            events = await app.storage.get_trace_events(
                after=after_dt,
                event_types=[event_type] if event_type else None,
                actor=actor,
                limit=limit,
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [
            {
                "id": e.id,
                "event_type": e.event_type,
                "actor": e.actor,
                "data": e.data,
                "timestamp": e.timestamp.isoformat(),
            }
            for e in events
        ]

    @router.get("/stats", response_model=RelayStatsResponse)
    async def get_stats() -> dict:
        """Connection and retention counters."""
        return {
            "connections": len(app.relay.connections),
            "online": len(app.relay.online()),
            "stored_messages": await app.storage.count_messages(),
        }

    return router
