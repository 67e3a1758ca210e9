"""Outbox feed for collaborators (complaints, maintenance, QR logs).

Consumers poll with after_id set to the last event id they processed.
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from hostelly.infra.db import txn
from hostelly.infra.repositories.outbox_repository import list_events

router = APIRouter(prefix="/outbox", tags=["outbox"])


@router.get("")
def list_outbox_events(
    aggregate_type: str | None = Query(None, description="Filter by aggregate type"),
    aggregate_id: str | None = Query(None, description="Filter by aggregate ID"),
    event_type: str | None = Query(None, description="Filter by event type"),
    after_id: int = Query(0, ge=0, description="Return events with id > after_id"),
    limit: int = Query(50, ge=1, le=200, description="Max results"),
) -> dict:
    """List outbox events in emission order."""
    with txn() as cur:
        events = list_events(
            cur,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            after_id=after_id,
            limit=limit,
        )

    next_after_id = events[-1]["id"] if events else after_id
    return {"events": events, "next_after_id": next_after_id}
