"""Capacity registry - read-only view over rooms, hostels and room types.

Answers "how many people can this room hold and how many are there now"
without side effects. The occupancy figures it reports are the reconciler's
derived counters; nothing here writes them.

Hostel-level room counts stored on the hostel row are a materialized view.
refresh_hostel_totals() rebuilds them from rooms when asked; they are never
consulted for admission decisions.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from hostelly.domain.errors import NotFoundError
from hostelly.domain.statuses import OCCUPIABLE_ROOM_STATUSES
from hostelly.infra.db import txn
from hostelly.infra.repositories.hostels_repository import (
    aggregate_room_capacity,
    hostel_exists,
    refresh_totals,
)
from hostelly.infra.repositories.rooms_repository import get_room
from hostelly.observability.logging import get_logger

logger = get_logger(__name__)


def headroom(room: dict) -> int:
    """Free slots in a room (max_capacity - current_occupancy, floored at 0)."""
    return max(room["max_capacity"] - room["current_occupancy"], 0)


def room_accepts_occupancy(room: dict) -> bool:
    """True if the room's status permits new occupants.

    Under maintenance, out of service and reserved rooms refuse check-ins
    regardless of free beds. Archived rooms (is_active = false) too.
    """
    return bool(room.get("is_active", True)) and room["status"] in OCCUPIABLE_ROOM_STATUSES


def require_room(cur: PgCursor, room_id: int, *, lock: bool = False) -> dict:
    """Fetch a room or raise NotFoundError."""
    room = get_room(cur, room_id, lock=lock)
    if room is None:
        raise NotFoundError("room", room_id)
    return room


def capacity_of(room_id: int, *, cur: PgCursor | None = None) -> dict:
    """Return capacity figures for a room.

    Returns:
        {
            "room_id": int,
            "hostel_id": int,
            "max_capacity": int,
            "current_occupancy": int,
            "headroom": int,
            "status": str,
        }

    Raises:
        NotFoundError: If the room does not exist.
    """

    def _do(c: PgCursor) -> dict:
        room = require_room(c, room_id)
        return {
            "room_id": room["id"],
            "hostel_id": room["hostel_id"],
            "max_capacity": room["max_capacity"],
            "current_occupancy": room["current_occupancy"],
            "headroom": headroom(room),
            "status": room["status"],
        }

    if cur is not None:
        return _do(cur)
    with txn() as c:
        return _do(c)


def has_headroom(room_id: int, *, cur: PgCursor | None = None) -> bool:
    """True if the room has a free slot and its status permits occupancy.

    Raises:
        NotFoundError: If the room does not exist.
    """

    def _do(c: PgCursor) -> bool:
        room = require_room(c, room_id)
        return room_accepts_occupancy(room) and headroom(room) > 0

    if cur is not None:
        return _do(cur)
    with txn() as c:
        return _do(c)


def hostel_capacity(hostel_id: int, *, cur: PgCursor | None = None) -> dict:
    """Aggregate live capacity across a hostel's active rooms.

    Raises:
        NotFoundError: If the hostel does not exist.
    """

    def _do(c: PgCursor) -> dict:
        if not hostel_exists(c, hostel_id):
            raise NotFoundError("hostel", hostel_id)
        total_rooms, total_capacity, occupancy = aggregate_room_capacity(c, hostel_id=hostel_id)
        return {
            "hostel_id": hostel_id,
            "total_rooms": total_rooms,
            "total_capacity": total_capacity,
            "current_occupancy": occupancy,
            "headroom": max(total_capacity - occupancy, 0),
        }

    if cur is not None:
        return _do(cur)
    with txn() as c:
        return _do(c)


def refresh_hostel_totals(hostel_id: int, *, cur: PgCursor | None = None) -> dict:
    """Rebuild the materialized room counts on a hostel row from its rooms.

    Raises:
        NotFoundError: If the hostel does not exist.
    """

    def _do(c: PgCursor) -> dict:
        row = refresh_totals(c, hostel_id=hostel_id)
        if row is None:
            raise NotFoundError("hostel", hostel_id)
        return {
            "hostel_id": hostel_id,
            "num_single_rooms": row[0],
            "num_double_rooms": row[1],
            "num_triple_rooms": row[2],
            "num_quad_rooms": row[3],
            "total_rooms": row[4],
            "total_capacity": row[5],
        }

    if cur is not None:
        result = _do(cur)
    else:
        with txn() as c:
            result = _do(c)

    logger.info(
        "hostel totals refreshed",
        extra={
            "extra_fields": {
                "hostel_id": hostel_id,
                "total_rooms": result["total_rooms"],
                "total_capacity": result["total_capacity"],
            }
        },
    )
    return result
