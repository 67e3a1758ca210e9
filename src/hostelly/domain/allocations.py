"""Allocation ledger - check-in / check-out state machine.

States:

    (pending) -> active -> completed | early_checkout | overstayed
    (pending) -> cancelled
    overstayed -> completed | early_checkout   (eventual check-out)

Pending is implicit: check_in() creates the allocation already 'active'.
An allocation dated in the future (advance allocation) is active and holds
its slot until it is cancelled or the stay ends.

Concurrency:
- check_in() locks the room row (SELECT ... FOR UPDATE) before checking
  headroom, so the headroom check and the insert form one atomic unit per
  room. Two check-ins racing for the last slot serialize on that lock; the
  second sees no headroom and fails with RoomFullError.
- The member rule is checked explicitly and backed by the partial unique
  index uq_allocations_member_occupying, which catches races between
  check-ins into different rooms at insert time.
- Every other mutation locks the allocation row first, so transitions on
  one allocation id are linearizable.

Occupancy counters and outbox events are written in the same transaction
as the ledger row.
"""

from __future__ import annotations

from datetime import date, datetime

from psycopg2 import errors as pg_errors
from psycopg2.extensions import cursor as PgCursor

from hostelly.domain.capacity import headroom, require_room, room_accepts_occupancy
from hostelly.domain.errors import (
    CannotCancelActiveError,
    DuplicateActiveAllocationError,
    InvalidDateOrderError,
    MemberInactiveError,
    NotActiveError,
    NotFoundError,
    RoomFullError,
    RoomUnavailableError,
)
from hostelly.domain.occupancy import on_allocation_activated, on_allocation_deactivated
from hostelly.domain.statuses import (
    ACTIVE,
    CANCELLED,
    COMPLETED,
    EARLY_CHECKOUT,
    OCCUPYING_STATUSES,
    OVERSTAYED,
)
from hostelly.infra.db import txn
from hostelly.infra.repositories import allocations_repository as repo
from hostelly.infra.repositories.outbox_repository import (
    emit_allocation_activated,
    emit_allocation_deactivated,
    emit_allocation_overstayed,
)
from hostelly.infra.time import as_utc
from hostelly.observability.correlation import get_correlation_id
from hostelly.observability.logging import get_logger

logger = get_logger(__name__)


def _run(cur: PgCursor | None, fn):
    """Run fn(cursor) in the caller's transaction or a fresh one."""
    if cur is not None:
        return fn(cur)
    with txn() as c:
        return fn(c)


def _db_now(cur: PgCursor) -> datetime:
    cur.execute("SELECT now()")
    return cur.fetchone()[0]


def _require_allocation(cur: PgCursor, allocation_id: int) -> dict:
    allocation = repo.get_allocation(cur, allocation_id, lock=True)
    if allocation is None:
        raise NotFoundError("allocation", allocation_id)
    return allocation


def _log_transition(message: str, allocation: dict, **fields) -> None:
    logger.info(
        message,
        extra={
            "extra_fields": {
                "allocation_id": allocation["id"],
                "room_id": allocation["room_id"],
                "member_id": allocation["member_id"],
                "status": allocation["status"],
                **fields,
            }
        },
    )


def check_in(
    *,
    member_id: int,
    room_id: int,
    check_in_at: date | datetime,
    allocated_by: str | None = None,
    expected_check_out_at: date | datetime | None = None,
    remarks: str | None = None,
    correlation_id: str | None = None,
    cur: PgCursor | None = None,
) -> dict:
    """Check a member into a room.

    This function, in one transaction:
    1. Validates the member (exists, active)
    2. Locks the room row
    3. Verifies the member holds no occupying allocation
    4. Verifies the room status permits occupancy, then headroom
    5. Inserts the allocation as 'active'
    6. Increments room occupancy (reconciler)
    7. Emits ALLOCATION_ACTIVATED

    Args:
        member_id: Member identifier.
        room_id: Room identifier.
        check_in_at: Check-in date or timestamp (dates mean midnight UTC).
        allocated_by: Warden name or staff id performing the allocation.
        expected_check_out_at: Planned departure; None for open-ended stays.
        remarks: Free-text remarks (never logged).
        correlation_id: Optional correlation ID for tracing.
        cur: Optional cursor to join an existing transaction.

    Returns:
        The new allocation as a dict (includes "id").

    Raises:
        InvalidDateOrderError: expected_check_out_at precedes check_in_at.
        NotFoundError: Unknown member or room.
        MemberInactiveError: Member is flagged inactive.
        DuplicateActiveAllocationError: Member already has an occupying allocation.
        RoomUnavailableError: Room status forbids occupancy.
        RoomFullError: Room has no headroom.
    """
    check_in_at = as_utc(check_in_at)
    expected = as_utc(expected_check_out_at) if expected_check_out_at is not None else None
    if expected is not None and expected < check_in_at:
        raise InvalidDateOrderError(
            "expected check-out precedes check-in",
            check_in_at=check_in_at,
            expected_check_out_at=expected,
        )

    correlation_id = correlation_id or get_correlation_id() or None

    def _do(c: PgCursor) -> dict:
        member = repo.get_member(c, member_id)
        if member is None:
            raise NotFoundError("member", member_id)
        if not member[1]:
            raise MemberInactiveError(f"member {member_id} is inactive", member_id=member_id)

        room = require_room(c, room_id, lock=True)

        existing_id = repo.find_occupying_allocation_id(
            c, member_id=member_id, statuses=OCCUPYING_STATUSES
        )
        if existing_id is not None:
            raise DuplicateActiveAllocationError(
                f"member {member_id} already has active allocation {existing_id}",
                member_id=member_id,
                allocation_id=existing_id,
            )

        if not room_accepts_occupancy(room):
            raise RoomUnavailableError(
                f"room {room_id} is {room['status']}", room_id=room_id, status=room["status"]
            )

        if headroom(room) <= 0:
            raise RoomFullError(
                f"room {room_id} is full ({room['current_occupancy']}/{room['max_capacity']})",
                room_id=room_id,
            )

        try:
            allocation = repo.insert_allocation(
                c,
                member_id=member_id,
                room_id=room_id,
                check_in_at=check_in_at,
                expected_check_out_at=expected,
                allocated_by=allocated_by,
                remarks=remarks,
            )
        except pg_errors.UniqueViolation as exc:
            raise DuplicateActiveAllocationError(
                f"member {member_id} already has an active allocation",
                member_id=member_id,
            ) from exc

        on_allocation_activated(c, room_id=room_id, allocation_id=allocation["id"])

        emit_allocation_activated(
            c,
            allocation_id=allocation["id"],
            room_id=room_id,
            member_id=member_id,
            correlation_id=correlation_id,
        )
        return allocation

    allocation = _run(cur, _do)
    _log_transition("allocation checked in", allocation, check_in_at=check_in_at.isoformat())
    return allocation


def _planned_date(expected_date: date | datetime | None, stored: datetime | None) -> date | None:
    planned = expected_date if expected_date is not None else stored
    if planned is None:
        return None
    return as_utc(planned).date()


def check_out(
    *,
    allocation_id: int,
    check_out_at: date | datetime,
    expected_date: date | datetime | None = None,
    correlation_id: str | None = None,
    cur: PgCursor | None = None,
) -> dict:
    """Check a member out and release the slot.

    The planned departure is expected_date when given, else the stored
    expected_check_out_at. Checking out on or after the planned day (or
    with no planned day) completes the stay; before it is an early checkout.

    Returns:
        The updated allocation as a dict.

    Raises:
        NotFoundError: Unknown allocation.
        NotActiveError: Allocation is not occupying (already closed).
        InvalidDateOrderError: check_out_at precedes check_in_at.
    """
    check_out_at = as_utc(check_out_at)
    correlation_id = correlation_id or get_correlation_id() or None

    def _do(c: PgCursor) -> dict:
        allocation = _require_allocation(c, allocation_id)

        if allocation["status"] not in OCCUPYING_STATUSES:
            raise NotActiveError(
                f"allocation {allocation_id} is {allocation['status']}",
                allocation_id=allocation_id,
                status=allocation["status"],
            )

        if check_out_at < allocation["check_in_at"]:
            raise InvalidDateOrderError(
                "check-out precedes check-in",
                allocation_id=allocation_id,
                check_in_at=allocation["check_in_at"],
                check_out_at=check_out_at,
            )

        planned = _planned_date(expected_date, allocation["expected_check_out_at"])
        if planned is None or check_out_at.date() >= planned:
            status = COMPLETED
        else:
            status = EARLY_CHECKOUT

        updated = repo.close_allocation(
            c, allocation_id=allocation_id, status=status, check_out_at=check_out_at
        )
        on_allocation_deactivated(c, room_id=updated["room_id"], allocation_id=allocation_id)
        emit_allocation_deactivated(
            c,
            allocation_id=allocation_id,
            room_id=updated["room_id"],
            member_id=updated["member_id"],
            reason=status,
            correlation_id=correlation_id,
        )
        return updated

    allocation = _run(cur, _do)
    _log_transition("allocation checked out", allocation, check_out_at=check_out_at.isoformat())
    return allocation


def cancel(
    *,
    allocation_id: int,
    as_of: date | datetime | None = None,
    correlation_id: str | None = None,
    cur: PgCursor | None = None,
) -> dict:
    """Cancel an advance allocation whose stay has not begun.

    The member never occupied the room. The slot the allocation held is
    released so occupancy keeps matching the ledger.

    Args:
        allocation_id: Allocation identifier.
        as_of: Reference time (default: database now()).

    Raises:
        NotFoundError: Unknown allocation.
        NotActiveError: Allocation is already closed.
        CannotCancelActiveError: The stay has already begun.
    """
    correlation_id = correlation_id or get_correlation_id() or None

    def _do(c: PgCursor) -> dict:
        allocation = _require_allocation(c, allocation_id)
        status = allocation["status"]

        if status == OVERSTAYED:
            raise CannotCancelActiveError(
                f"allocation {allocation_id} is overstayed", allocation_id=allocation_id
            )
        if status != ACTIVE:
            raise NotActiveError(
                f"allocation {allocation_id} is {status}",
                allocation_id=allocation_id,
                status=status,
            )

        now = as_utc(as_of) if as_of is not None else _db_now(c)
        if allocation["check_in_at"] <= now:
            raise CannotCancelActiveError(
                f"allocation {allocation_id} began at {allocation['check_in_at'].isoformat()}",
                allocation_id=allocation_id,
            )

        updated = repo.close_allocation(
            c, allocation_id=allocation_id, status=CANCELLED, check_out_at=None
        )
        on_allocation_deactivated(c, room_id=updated["room_id"], allocation_id=allocation_id)
        emit_allocation_deactivated(
            c,
            allocation_id=allocation_id,
            room_id=updated["room_id"],
            member_id=updated["member_id"],
            reason=CANCELLED,
            correlation_id=correlation_id,
        )
        return updated

    allocation = _run(cur, _do)
    _log_transition("allocation cancelled", allocation)
    return allocation


def mark_overstayed(
    *,
    allocation_id: int,
    as_of: date | datetime | None = None,
    correlation_id: str | None = None,
    cur: PgCursor | None = None,
) -> dict:
    """Flag an active allocation whose expected check-out has passed.

    Occupancy is untouched: the member is still in the room.

    Args:
        allocation_id: Allocation identifier.
        as_of: Reference time (default: database now()).

    Returns:
        Dict with result status:
        - {"status": "overstayed", "allocation_id": int, "room_id": int}
        - {"status": "noop", "allocation_id": int} - already overstayed
        - {"status": "not_overdue", "allocation_id": int} - no expected
          check-out, or it has not passed yet

    Raises:
        NotFoundError: Unknown allocation.
        NotActiveError: Allocation is closed.
    """
    correlation_id = correlation_id or get_correlation_id() or None

    def _do(c: PgCursor) -> tuple[dict, dict | None]:
        allocation = _require_allocation(c, allocation_id)
        status = allocation["status"]

        if status == OVERSTAYED:
            return {"status": "noop", "allocation_id": allocation_id}, None

        if status != ACTIVE:
            raise NotActiveError(
                f"allocation {allocation_id} is {status}",
                allocation_id=allocation_id,
                status=status,
            )

        now = as_utc(as_of) if as_of is not None else _db_now(c)
        expected = allocation["expected_check_out_at"]
        if expected is None or now <= expected:
            return {"status": "not_overdue", "allocation_id": allocation_id}, None

        updated = repo.flag_overstayed(c, allocation_id=allocation_id, overstayed_at=now)
        emit_allocation_overstayed(
            c,
            allocation_id=allocation_id,
            room_id=updated["room_id"],
            member_id=updated["member_id"],
            expected_check_out_at=expected.isoformat(),
            correlation_id=correlation_id,
        )
        return {"status": "overstayed", "allocation_id": allocation_id, "room_id": updated["room_id"]}, updated

    result, updated = _run(cur, _do)
    if updated is not None:
        _log_transition(
            "allocation overstayed",
            updated,
            overstayed_at=updated["overstayed_at"],
        )
    return result


def extend_stay(
    *,
    allocation_id: int,
    expected_check_out_at: date | datetime,
    as_of: date | datetime | None = None,
    cur: PgCursor | None = None,
) -> dict:
    """Move the planned departure of an occupying allocation.

    An overstayed allocation extended past as_of becomes active again.

    Raises:
        NotFoundError: Unknown allocation.
        NotActiveError: Allocation is closed.
        InvalidDateOrderError: New date precedes check-in.
    """
    expected = as_utc(expected_check_out_at)

    def _do(c: PgCursor) -> dict:
        allocation = _require_allocation(c, allocation_id)
        status = allocation["status"]

        if status not in OCCUPYING_STATUSES:
            raise NotActiveError(
                f"allocation {allocation_id} is {status}",
                allocation_id=allocation_id,
                status=status,
            )

        if expected < allocation["check_in_at"]:
            raise InvalidDateOrderError(
                "expected check-out precedes check-in",
                allocation_id=allocation_id,
                expected_check_out_at=expected,
            )

        if status == OVERSTAYED:
            now = as_utc(as_of) if as_of is not None else _db_now(c)
            if expected > now:
                status = ACTIVE

        return repo.update_expected_check_out(
            c, allocation_id=allocation_id, expected_check_out_at=expected, status=status
        )

    allocation = _run(cur, _do)
    _log_transition("allocation stay extended", allocation, expected_check_out_at=expected.isoformat())
    return allocation


def get_allocation(allocation_id: int, *, cur: PgCursor | None = None) -> dict:
    """Fetch an allocation or raise NotFoundError."""

    def _do(c: PgCursor) -> dict:
        allocation = repo.get_allocation(c, allocation_id)
        if allocation is None:
            raise NotFoundError("allocation", allocation_id)
        return allocation

    return _run(cur, _do)


def list_allocations(
    *,
    room_id: int | None = None,
    member_id: int | None = None,
    status: str | None = None,
    limit: int = 100,
    cur: PgCursor | None = None,
) -> list[dict]:
    return _run(
        cur,
        lambda c: repo.list_allocations(
            c, room_id=room_id, member_id=member_id, status=status, limit=limit
        ),
    )
