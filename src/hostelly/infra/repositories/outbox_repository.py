"""Allocation lifecycle events for external collaborators.

Rows are inserted on the same cursor as the ledger change that caused
them: a committed transition always has its event, a rolled back one never
does. Complaint, maintenance and QR-log subsystems page through the outbox
by id; payloads carry ids only.
"""

import json

from psycopg2.extensions import cursor as PgCursor

from hostelly.infra.db import fetchall, fetchone

ALLOCATION_ACTIVATED = "ALLOCATION_ACTIVATED"
ALLOCATION_DEACTIVATED = "ALLOCATION_DEACTIVATED"
ALLOCATION_OVERSTAYED = "ALLOCATION_OVERSTAYED"

AGGREGATE_ALLOCATION = "allocation"

_EVENT_COLUMNS = ("id", "event_type", "aggregate_type", "aggregate_id", "payload", "correlation_id", "ts")


def emit_event(
    cur: PgCursor,
    *,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str,
    payload: dict | None = None,
    correlation_id: str | None = None,
) -> int:
    """Insert one outbox row and return its id."""
    row = fetchone(
        cur,
        """
        INSERT INTO outbox_events (event_type, aggregate_type, aggregate_id, payload, correlation_id)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id
        """,
        (event_type, aggregate_type, aggregate_id, json.dumps(payload) if payload else None, correlation_id),
    )
    return row[0]


def _emit_for_allocation(
    cur: PgCursor, event_type: str, allocation_id: int, correlation_id: str | None, **payload
) -> int:
    return emit_event(
        cur,
        event_type=event_type,
        aggregate_type=AGGREGATE_ALLOCATION,
        aggregate_id=str(allocation_id),
        payload=payload,
        correlation_id=correlation_id,
    )


def emit_allocation_activated(
    cur: PgCursor, *, allocation_id: int, room_id: int, member_id: int, correlation_id: str | None = None
) -> int:
    return _emit_for_allocation(
        cur, ALLOCATION_ACTIVATED, allocation_id, correlation_id, room_id=room_id, member_id=member_id
    )


def emit_allocation_deactivated(
    cur: PgCursor,
    *,
    allocation_id: int,
    room_id: int,
    member_id: int,
    reason: str,
    correlation_id: str | None = None,
) -> int:
    """A slot in room_id became free; reason is completed, early_checkout or cancelled."""
    return _emit_for_allocation(
        cur,
        ALLOCATION_DEACTIVATED,
        allocation_id,
        correlation_id,
        room_id=room_id,
        member_id=member_id,
        reason=reason,
    )


def emit_allocation_overstayed(
    cur: PgCursor,
    *,
    allocation_id: int,
    room_id: int,
    member_id: int,
    expected_check_out_at: str,
    correlation_id: str | None = None,
) -> int:
    return _emit_for_allocation(
        cur,
        ALLOCATION_OVERSTAYED,
        allocation_id,
        correlation_id,
        room_id=room_id,
        member_id=member_id,
        expected_check_out_at=expected_check_out_at,
    )


def list_events(
    cur: PgCursor,
    *,
    aggregate_type: str | None = None,
    aggregate_id: str | None = None,
    event_type: str | None = None,
    after_id: int = 0,
    limit: int = 50,
) -> list[dict]:
    """Events with id > after_id in emission order.

    Consumers remember the last id they handled and pass it back as after_id.
    """
    filters = ["id > %s"]
    params: list = [after_id]
    for column, value in (
        ("aggregate_type", aggregate_type),
        ("aggregate_id", aggregate_id),
        ("event_type", event_type),
    ):
        if value is not None:
            filters.append(f"{column} = %s")
            params.append(value)
    params.append(limit)

    rows = fetchall(
        cur,
        f"""
        SELECT id, event_type, aggregate_type, aggregate_id, payload, correlation_id, occurred_at
        FROM outbox_events
        WHERE {' AND '.join(filters)}
        ORDER BY id
        LIMIT %s
        """,
        params,
    )
    events = [dict(zip(_EVENT_COLUMNS, row)) for row in rows]
    for event in events:
        event["ts"] = event["ts"].isoformat() if event["ts"] else None
    return events
