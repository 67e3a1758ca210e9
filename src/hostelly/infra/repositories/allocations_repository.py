"""Allocations repository - persistence for the allocation ledger.

Uses raw SQL with psycopg2 (no ORM). Rows are never deleted; terminal
transitions only update status and timestamps.
"""

from datetime import datetime

from psycopg2.extensions import cursor as PgCursor

from hostelly.infra.db import fetchall, fetchone, for_update

_ALLOCATION_COLUMNS = """
    id, member_id, room_id, check_in_at, check_out_at, expected_check_out_at,
    status, allocated_by, remarks, overstayed_at, created_at, updated_at
"""


def _row_to_allocation(row: tuple) -> dict:
    return {
        "id": row[0],
        "member_id": row[1],
        "room_id": row[2],
        "check_in_at": row[3],
        "check_out_at": row[4],
        "expected_check_out_at": row[5],
        "status": row[6],
        "allocated_by": row[7],
        "remarks": row[8],
        "overstayed_at": row[9],
        "created_at": row[10],
        "updated_at": row[11],
    }


def get_member(cur: PgCursor, member_id: int) -> tuple[int, bool] | None:
    """Fetch (id, is_active) for a member; the only member fields the ledger reads."""
    return fetchone(cur, "SELECT id, is_active FROM members WHERE id = %s", (member_id,))


def insert_allocation(
    cur: PgCursor,
    *,
    member_id: int,
    room_id: int,
    check_in_at: datetime,
    expected_check_out_at: datetime | None,
    allocated_by: str | None,
    remarks: str | None,
) -> dict:
    """Insert a new allocation in status 'active'.

    The partial unique index uq_allocations_member_occupying raises
    psycopg2.errors.UniqueViolation if the member already holds an
    occupying allocation.

    Returns:
        The inserted allocation as a dict.
    """
    cur.execute(
        f"""
        INSERT INTO allocations (
            member_id, room_id, check_in_at, expected_check_out_at,
            status, allocated_by, remarks
        )
        VALUES (%s, %s, %s, %s, 'active', %s, %s)
        RETURNING {_ALLOCATION_COLUMNS}
        """,
        (member_id, room_id, check_in_at, expected_check_out_at, allocated_by, remarks),
    )
    return _row_to_allocation(cur.fetchone())


def get_allocation(cur: PgCursor, allocation_id: int, *, lock: bool = False) -> dict | None:
    """Fetch an allocation, optionally locking it for the rest of the transaction."""
    query = f"SELECT {_ALLOCATION_COLUMNS} FROM allocations WHERE id = %s"
    if lock:
        row = for_update(cur, query, (allocation_id,))
    else:
        cur.execute(query, (allocation_id,))
        row = cur.fetchone()
    return _row_to_allocation(row) if row is not None else None


def find_occupying_allocation_id(
    cur: PgCursor, *, member_id: int, statuses: tuple[str, ...]
) -> int | None:
    """Return the id of the member's occupying allocation, if any."""
    cur.execute(
        """
        SELECT id FROM allocations
        WHERE member_id = %s AND status = ANY(%s)
        LIMIT 1
        """,
        (member_id, list(statuses)),
    )
    row = cur.fetchone()
    return row[0] if row is not None else None


def close_allocation(
    cur: PgCursor,
    *,
    allocation_id: int,
    status: str,
    check_out_at: datetime | None,
) -> dict:
    """Move an allocation to a terminal status."""
    cur.execute(
        f"""
        UPDATE allocations
        SET status = %s, check_out_at = %s, updated_at = now()
        WHERE id = %s
        RETURNING {_ALLOCATION_COLUMNS}
        """,
        (status, check_out_at, allocation_id),
    )
    return _row_to_allocation(cur.fetchone())


def flag_overstayed(cur: PgCursor, *, allocation_id: int, overstayed_at: datetime) -> dict:
    cur.execute(
        f"""
        UPDATE allocations
        SET status = 'overstayed', overstayed_at = %s, updated_at = now()
        WHERE id = %s
        RETURNING {_ALLOCATION_COLUMNS}
        """,
        (overstayed_at, allocation_id),
    )
    return _row_to_allocation(cur.fetchone())


def update_expected_check_out(
    cur: PgCursor,
    *,
    allocation_id: int,
    expected_check_out_at: datetime,
    status: str,
) -> dict:
    """Set the planned departure; overstayed_at is cleared unless status stays overstayed."""
    cur.execute(
        f"""
        UPDATE allocations
        SET expected_check_out_at = %s,
            status = %s,
            overstayed_at = CASE WHEN %s = 'overstayed' THEN overstayed_at END,
            updated_at = now()
        WHERE id = %s
        RETURNING {_ALLOCATION_COLUMNS}
        """,
        (expected_check_out_at, status, status, allocation_id),
    )
    return _row_to_allocation(cur.fetchone())


def list_allocations(
    cur: PgCursor,
    *,
    room_id: int | None = None,
    member_id: int | None = None,
    status: str | None = None,
    limit: int = 100,
) -> list[dict]:
    """List allocations, newest check-in first, with optional filters."""
    conditions = ["TRUE"]
    params: list = []

    if room_id is not None:
        conditions.append("room_id = %s")
        params.append(room_id)

    if member_id is not None:
        conditions.append("member_id = %s")
        params.append(member_id)

    if status is not None:
        conditions.append("status = %s")
        params.append(status)

    params.append(limit)
    where = " AND ".join(conditions)

    cur.execute(
        f"""
        SELECT {_ALLOCATION_COLUMNS}
        FROM allocations
        WHERE {where}
        ORDER BY check_in_at DESC, id DESC
        LIMIT %s
        """,
        params,
    )
    return [_row_to_allocation(row) for row in cur.fetchall()]


def find_overdue_allocation_ids(cur: PgCursor, *, as_of: datetime, limit: int) -> list[int]:
    """Ids of active allocations whose expected check-out is before as_of."""
    rows = fetchall(
        cur,
        """
        SELECT id FROM allocations
        WHERE status = 'active'
          AND expected_check_out_at IS NOT NULL
          AND expected_check_out_at < %s
        ORDER BY expected_check_out_at ASC, id ASC
        LIMIT %s
        """,
        (as_of, limit),
    )
    return [row[0] for row in rows]
