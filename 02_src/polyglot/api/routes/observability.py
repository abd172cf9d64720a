"""Observability API routes."""

from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ...app import Application


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


class TaskResponse(BaseModel):
    """Response model for a deferred task."""

    id: str
    task_type: str
    payload: dict[str, Any]
    status: str
    run_at: datetime
    created_at: datetime
    attempts: int
    last_error: str | None = None


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

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

        events = await app.storage.get_trace_events(
            after=after_dt,
            event_types=[event_type] if event_type else None,
            actor=actor,
            limit=limit,
        )

        return [
            {
                "id": e.id,
                "event_type": e.event_type,
                "actor": e.actor,
                "data": e.data,
                "timestamp": e.timestamp,
            }
            for e in events
        ]

    @router.get("/tasks", response_model=list[TaskResponse])
    async def get_tasks(
        status: Literal["pending", "running", "done", "failed"] | None = Query(None),
        limit: int = Query(100, ge=1, le=1000),
    ) -> list[dict]:
        """Deferred tasks, newest first."""
        tasks = await app.storage.get_tasks(status=status, limit=limit)
        return [
            {
                "id": t.id,
                "task_type": t.task_type.value,
                "payload": t.payload,
                "status": t.status,
                "run_at": t.run_at,
                "created_at": t.created_at,
                "attempts": t.attempts,
                "last_error": t.last_error,
            }
            for t in tasks
        ]

    return router
