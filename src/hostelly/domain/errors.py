"""Allocation error taxonomy.

Every error is terminal for the call that raised it: the surrounding
transaction rolls back and nothing is retried inside the core. Each class
carries a stable ``code`` that the HTTP layer returns to callers.
"""

from __future__ import annotations


class AllocationError(Exception):
    """Base class for errors raised by allocation and capacity operations."""

    code = "allocation_error"

    def __init__(self, message: str, **context: object) -> None:
        self.context = context
        super().__init__(message)


class NotFoundError(AllocationError):
    """Unknown member, room, hostel or allocation id."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: object) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)


class MemberInactiveError(AllocationError):
    """Member exists but is flagged inactive."""

    code = "member_inactive"


class DuplicateActiveAllocationError(AllocationError):
    """Member already holds an occupying allocation."""

    code = "duplicate_active_allocation"


class RoomFullError(AllocationError):
    """Room has no headroom left."""

    code = "room_full"


class RoomUnavailableError(AllocationError):
    """Room status forbids occupancy (maintenance, out of service, reserved)."""

    code = "room_unavailable"


class InvalidDateOrderError(AllocationError):
    """A check-out or expected check-out precedes the check-in."""

    code = "invalid_date_order"


class NotActiveError(AllocationError):
    """Operation requires a live allocation but it is in a terminal state."""

    code = "not_active"


class CannotCancelActiveError(AllocationError):
    """Cancel attempted after the stay has begun."""

    code = "cannot_cancel_active"


class OccupancyConsistencyError(AllocationError):
    """A room's occupancy counter guard failed; the counter has drifted from the ledger.

    POST /tasks/rooms/{id}/reconcile repairs the counter.
    """

    code = "occupancy_inconsistent"
