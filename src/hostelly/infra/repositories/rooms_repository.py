"""Rooms repository - capacity data and the derived occupancy counter.

Uses raw SQL with psycopg2 (no ORM). Only the occupancy reconciler calls the
counter mutators in this module.
"""

from psycopg2.extensions import cursor as PgCursor

from hostelly.infra.db import for_update

_ROOM_COLUMNS = """
    id, hostel_id, room_type_id, room_number, max_capacity,
    current_occupancy, status, is_active
"""


def _row_to_room(row: tuple) -> dict:
    return {
        "id": row[0],
        "hostel_id": row[1],
        "room_type_id": row[2],
        "room_number": row[3],
        "max_capacity": row[4],
        "current_occupancy": row[5],
        "status": row[6],
        "is_active": row[7],
    }


def get_room(cur: PgCursor, room_id: int, *, lock: bool = False) -> dict | None:
    """Fetch a room row.

    Args:
        cur: Database cursor.
        room_id: Room identifier.
        lock: If True, lock the row (SELECT ... FOR UPDATE) until the
            transaction ends. Check-ins against the same room serialize here.

    Returns:
        Room dict or None if not found.
    """
    query = f"SELECT {_ROOM_COLUMNS} FROM rooms WHERE id = %s"
    if lock:
        row = for_update(cur, query, (room_id,))
    else:
        cur.execute(query, (room_id,))
        row = cur.fetchone()
    return _row_to_room(row) if row is not None else None


def increment_occupancy(cur: PgCursor, *, room_id: int) -> tuple[int, int, str] | None:
    """Increment current_occupancy with guard (never above max_capacity).

    Returns:
        (current_occupancy, max_capacity, status) after the update, or None
        if the guard failed (room full or missing).
    """
    cur.execute(
        """
        UPDATE rooms
        SET current_occupancy = current_occupancy + 1, updated_at = now()
        WHERE id = %s
          AND current_occupancy < max_capacity
        RETURNING current_occupancy, max_capacity, status
        """,
        (room_id,),
    )
    return cur.fetchone()


def decrement_occupancy(cur: PgCursor, *, room_id: int) -> tuple[int, int, str] | None:
    """Decrement current_occupancy with guard (never below zero).

    Returns:
        (current_occupancy, max_capacity, status) after the update, or None
        if the guard failed.
    """
    cur.execute(
        """
        UPDATE rooms
        SET current_occupancy = current_occupancy - 1, updated_at = now()
        WHERE id = %s
          AND current_occupancy > 0
        RETURNING current_occupancy, max_capacity, status
        """,
        (room_id,),
    )
    return cur.fetchone()


def update_room_state(
    cur: PgCursor,
    *,
    room_id: int,
    status: str,
    current_occupancy: int | None = None,
) -> None:
    """Overwrite a room's status, and optionally its occupancy counter."""
    if current_occupancy is None:
        cur.execute(
            "UPDATE rooms SET status = %s, updated_at = now() WHERE id = %s",
            (status, room_id),
        )
    else:
        cur.execute(
            """
            UPDATE rooms
            SET status = %s, current_occupancy = %s, updated_at = now()
            WHERE id = %s
            """,
            (status, current_occupancy, room_id),
        )


def count_occupying_allocations(
    cur: PgCursor, *, room_id: int, statuses: tuple[str, ...]
) -> int:
    """Count a room's allocations in the given (occupying) statuses."""
    cur.execute(
        """
        SELECT COUNT(*) FROM allocations
        WHERE room_id = %s AND status = ANY(%s)
        """,
        (room_id, list(statuses)),
    )
    return cur.fetchone()[0]
