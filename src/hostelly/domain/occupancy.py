"""Occupancy reconciler - derives room occupancy and status from the ledger.

This is the only writer of rooms.current_occupancy. Incremental adjustments
run inside the ledger's transaction, so the counter and the allocation row
commit (or roll back) together. Each adjustment is de-duplicated per
allocation id through processed_events: replaying an activation or
deactivation is a no-op.

recompute_room_occupancy() is the repair path: it recounts occupying
allocations and overwrites the counter.

Room status precedence: under_maintenance, out_of_service and reserved are
administrative and never overwritten by occupancy changes. Otherwise a room
becomes 'occupied' when it fills up and 'available' when it empties.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from hostelly.domain.capacity import require_room
from hostelly.domain.errors import OccupancyConsistencyError
from hostelly.domain.statuses import (
    BLOCKING_ROOM_STATUSES,
    OCCUPYING_STATUSES,
    ROOM_AVAILABLE,
    ROOM_OCCUPIED,
    ROOM_STATUSES,
)
from hostelly.infra.db import txn
from hostelly.infra.repositories.rooms_repository import (
    count_occupying_allocations,
    decrement_occupancy,
    increment_occupancy,
    update_room_state,
)
from hostelly.observability.logging import get_logger

logger = get_logger(__name__)

# Sources for processed_events dedupe
SOURCE_ACTIVATED = "occupancy.activated"
SOURCE_DEACTIVATED = "occupancy.deactivated"


def derive_room_status(current_status: str, occupancy: int, max_capacity: int) -> str:
    """Compute a room's status after its occupancy changed.

    >>> derive_room_status("available", 1, 1)
    'occupied'
    >>> derive_room_status("occupied", 0, 2)
    'available'
    >>> derive_room_status("under_maintenance", 0, 2)
    'under_maintenance'
    """
    if current_status in BLOCKING_ROOM_STATUSES:
        return current_status
    if occupancy <= 0:
        return ROOM_AVAILABLE
    if occupancy >= max_capacity:
        return ROOM_OCCUPIED
    return current_status


def _claim(cur: PgCursor, source: str, allocation_id: int) -> bool:
    """Record (source, allocation_id) as processed. False if already there."""
    cur.execute(
        """
        INSERT INTO processed_events (source, external_id)
        VALUES (%s, %s)
        ON CONFLICT (source, external_id) DO NOTHING
        """,
        (source, str(allocation_id)),
    )
    return cur.rowcount == 1


def _apply(cur: PgCursor, room_id: int, row: tuple[int, int, str]) -> None:
    occupancy, max_capacity, status = row
    new_status = derive_room_status(status, occupancy, max_capacity)
    if new_status != status:
        update_room_state(cur, room_id=room_id, status=new_status)


def on_allocation_activated(cur: PgCursor, *, room_id: int, allocation_id: int) -> bool:
    """Count a newly active allocation towards its room's occupancy.

    Must run inside the transaction that inserted the allocation.

    Returns:
        True if the counter moved, False on a replayed activation.

    Raises:
        OccupancyConsistencyError: If the room is already at max_capacity.
    """
    if not _claim(cur, SOURCE_ACTIVATED, allocation_id):
        logger.info(
            "duplicate activation ignored",
            extra={"extra_fields": {"room_id": room_id, "allocation_id": allocation_id}},
        )
        return False

    row = increment_occupancy(cur, room_id=room_id)
    if row is None:
        raise OccupancyConsistencyError(
            f"Failed to increment occupancy for room {room_id} (allocation {allocation_id})"
        )

    _apply(cur, room_id, row)
    return True


def on_allocation_deactivated(cur: PgCursor, *, room_id: int, allocation_id: int) -> bool:
    """Release an allocation's slot in its room.

    Returns:
        True if the counter moved, False on a replayed deactivation.

    Raises:
        OccupancyConsistencyError: If the counter is already zero.
    """
    if not _claim(cur, SOURCE_DEACTIVATED, allocation_id):
        logger.info(
            "duplicate deactivation ignored",
            extra={"extra_fields": {"room_id": room_id, "allocation_id": allocation_id}},
        )
        return False

    row = decrement_occupancy(cur, room_id=room_id)
    if row is None:
        raise OccupancyConsistencyError(
            f"Failed to decrement occupancy for room {room_id} (allocation {allocation_id})"
        )

    _apply(cur, room_id, row)
    return True


def recompute_room_occupancy(room_id: int, *, cur: PgCursor | None = None) -> dict:
    """Recount a room's occupying allocations and overwrite its counter.

    Locks the room so concurrent check-ins wait for the repair to finish.

    Returns:
        {"room_id": int, "before": int, "after": int, "drift": int,
         "status": str}

    Raises:
        NotFoundError: If the room does not exist.
        OccupancyConsistencyError: If the ledger holds more occupying
            allocations than the room's max_capacity.
    """

    def _do(c: PgCursor) -> dict:
        room = require_room(c, room_id, lock=True)
        actual = count_occupying_allocations(c, room_id=room_id, statuses=OCCUPYING_STATUSES)

        if actual > room["max_capacity"]:
            raise OccupancyConsistencyError(
                f"Room {room_id} has {actual} occupying allocations "
                f"but max_capacity {room['max_capacity']}"
            )

        status = derive_room_status(room["status"], actual, room["max_capacity"])
        if actual != room["current_occupancy"] or status != room["status"]:
            update_room_state(c, room_id=room_id, status=status, current_occupancy=actual)

        return {
            "room_id": room_id,
            "before": room["current_occupancy"],
            "after": actual,
            "drift": actual - room["current_occupancy"],
            "status": status,
        }

    if cur is not None:
        result = _do(cur)
    else:
        with txn() as c:
            result = _do(c)

    if result["drift"]:
        logger.warning(
            "occupancy drift repaired",
            extra={"extra_fields": result},
        )
    return result


def set_room_status(room_id: int, status: str, *, cur: PgCursor | None = None) -> dict:
    """Administrative room status change.

    Blocking statuses (under_maintenance, out_of_service, reserved) are set
    as given; current occupants stay, new check-ins are refused. Setting
    'available' or 'occupied' clears a block and lets occupancy decide: a
    full room becomes 'occupied', anything else 'available'.

    Returns:
        {"room_id": int, "status": str, "current_occupancy": int}

    Raises:
        ValueError: If status is not a known room status.
        NotFoundError: If the room does not exist.
    """
    if status not in ROOM_STATUSES:
        raise ValueError(f"Unknown room status: {status}")

    def _do(c: PgCursor) -> dict:
        room = require_room(c, room_id, lock=True)
        if status in BLOCKING_ROOM_STATUSES:
            new_status = status
        else:
            new_status = derive_room_status(
                ROOM_AVAILABLE, room["current_occupancy"], room["max_capacity"]
            )

        if new_status != room["status"]:
            update_room_state(c, room_id=room_id, status=new_status)

        return {
            "room_id": room_id,
            "status": new_status,
            "current_occupancy": room["current_occupancy"],
        }

    if cur is not None:
        result = _do(cur)
    else:
        with txn() as c:
            result = _do(c)

    logger.info(
        "room status set",
        extra={"extra_fields": {"room_id": room_id, "requested": status, "status": result["status"]}},
    )
    return result
