"""Shared test helper functions for Hostelly tests.

This module contains helper functions that can be imported by both conftest.py
and individual test files. These are NOT fixtures - they are regular functions.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

requires_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


def allocation_row(
    *,
    allocation_id: int = 1,
    member_id: int = 10,
    room_id: int = 20,
    check_in_at: datetime = datetime(2025, 7, 15, tzinfo=timezone.utc),
    check_out_at: datetime | None = None,
    expected_check_out_at: datetime | None = None,
    status: str = "active",
    overstayed_at: datetime | None = None,
) -> tuple:
    """Row shaped like the allocations repository SELECT / RETURNING columns."""
    stamp = datetime(2025, 7, 1, tzinfo=timezone.utc)
    return (
        allocation_id,
        member_id,
        room_id,
        check_in_at,
        check_out_at,
        expected_check_out_at,
        status,
        "warden",
        None,
        overstayed_at,
        stamp,
        stamp,
    )


def room_row(
    *,
    room_id: int = 20,
    hostel_id: int = 1,
    max_capacity: int = 1,
    current_occupancy: int = 0,
    status: str = "available",
    is_active: bool = True,
) -> tuple:
    """Row shaped like the rooms repository SELECT columns."""
    return (room_id, hostel_id, 3, "101", max_capacity, current_occupancy, status, is_active)


def executed_sql(cursor) -> list[str]:
    """All SQL strings a MagicMock cursor was asked to execute."""
    return [call.args[0] for call in cursor.execute.call_args_list]


def room_state(room_id: int) -> tuple[int, str]:
    """(current_occupancy, status) of a room, read in a fresh transaction."""
    from hostelly.infra.db import txn

    with txn() as cur:
        cur.execute("SELECT current_occupancy, status FROM rooms WHERE id = %s", (room_id,))
        return cur.fetchone()


def occupying_count(room_id: int) -> int:
    """Number of active or overstayed allocations in a room."""
    from hostelly.infra.db import txn

    with txn() as cur:
        cur.execute(
            """
            SELECT COUNT(*) FROM allocations
            WHERE room_id = %s AND status IN ('active', 'overstayed')
            """,
            (room_id,),
        )
        return cur.fetchone()[0]


def outbox_event_types(allocation_id: int) -> list[str]:
    from hostelly.infra.db import txn

    with txn() as cur:
        cur.execute(
            """
            SELECT event_type FROM outbox_events
            WHERE aggregate_type = 'allocation' AND aggregate_id = %s
            ORDER BY id
            """,
            (str(allocation_id),),
        )
        return [row[0] for row in cur.fetchall()]
