"""Hostels repository - aggregate capacity and materialized room totals.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from hostelly.infra.db import fetchone


def hostel_exists(cur: PgCursor, hostel_id: int) -> bool:
    return fetchone(cur, "SELECT 1 FROM hostels WHERE id = %s", (hostel_id,)) is not None


def aggregate_room_capacity(cur: PgCursor, *, hostel_id: int) -> tuple[int, int, int]:
    """Sum live capacity over a hostel's active rooms.

    Returns:
        (total_rooms, total_capacity, current_occupancy).
    """
    cur.execute(
        """
        SELECT COUNT(*),
               COALESCE(SUM(max_capacity), 0),
               COALESCE(SUM(current_occupancy), 0)
        FROM rooms
        WHERE hostel_id = %s AND is_active
        """,
        (hostel_id,),
    )
    total_rooms, total_capacity, occupancy = cur.fetchone()
    return int(total_rooms), int(total_capacity), int(occupancy)


def refresh_totals(cur: PgCursor, *, hostel_id: int) -> tuple | None:
    """Recompute the per-size room counts and totals stored on the hostel row.

    Rooms are bucketed by max_capacity (1-4), which is what the single /
    double / triple / quad counters describe.

    Returns:
        (num_single, num_double, num_triple, num_quad, total_rooms,
        total_capacity) or None if the hostel does not exist.
    """
    cur.execute(
        """
        WITH counts AS (
            SELECT
                COUNT(*) FILTER (WHERE max_capacity = 1) AS n1,
                COUNT(*) FILTER (WHERE max_capacity = 2) AS n2,
                COUNT(*) FILTER (WHERE max_capacity = 3) AS n3,
                COUNT(*) FILTER (WHERE max_capacity = 4) AS n4,
                COUNT(*) AS total_rooms,
                COALESCE(SUM(max_capacity), 0) AS total_capacity
            FROM rooms
            WHERE hostel_id = %s AND is_active
        )
        UPDATE hostels h
        SET num_single_rooms = c.n1,
            num_double_rooms = c.n2,
            num_triple_rooms = c.n3,
            num_quad_rooms = c.n4,
            total_rooms = c.total_rooms,
            total_capacity = c.total_capacity,
            totals_refreshed_at = now(),
            updated_at = now()
        FROM counts c
        WHERE h.id = %s
        RETURNING h.num_single_rooms, h.num_double_rooms, h.num_triple_rooms,
                  h.num_quad_rooms, h.total_rooms, h.total_capacity
        """,
        (hostel_id, hostel_id),
    )
    return cur.fetchone()
