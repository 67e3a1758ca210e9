"""Allocation endpoints for front-desk terminals.

POST /allocations/check-in                          -> check a member in
GET  /allocations                                   -> list (filters)
GET  /allocations/{id}                              -> read
POST /allocations/{id}/actions/check-out            -> check out
POST /allocations/{id}/actions/cancel               -> cancel advance allocation
POST /allocations/{id}/actions/mark-overstayed      -> flag overstay
POST /allocations/{id}/actions/extend-stay          -> move planned departure
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, HTTPException, Path, Query
from pydantic import BaseModel, ConfigDict

from hostelly.api.errors import to_http_exception
from hostelly.domain import allocations as ledger
from hostelly.domain.errors import AllocationError
from hostelly.observability.correlation import get_correlation_id
from hostelly.observability.logging import get_logger
from hostelly.observability.redaction import safe_log_context

logger = get_logger(__name__)

router = APIRouter(prefix="/allocations", tags=["allocations"])

AllocationStatus = Literal["active", "completed", "cancelled", "early_checkout", "overstayed"]


# ── Schemas ───────────────────────────────────────────────────────────────────


class CheckInRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    member_id: int
    room_id: int
    check_in_at: datetime
    allocated_by: str | None = None
    expected_check_out_at: datetime | None = None
    remarks: str | None = None


class CheckOutRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    check_out_at: datetime
    expected_date: date | None = None


class AsOfRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    as_of: datetime | None = None


class ExtendStayRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    expected_check_out_at: datetime


# ── Helpers ───────────────────────────────────────────────────────────────────


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _allocation_to_dict(allocation: dict) -> dict:
    return {
        "id": allocation["id"],
        "member_id": allocation["member_id"],
        "room_id": allocation["room_id"],
        "status": allocation["status"],
        "check_in_at": _iso(allocation["check_in_at"]),
        "check_out_at": _iso(allocation["check_out_at"]),
        "expected_check_out_at": _iso(allocation["expected_check_out_at"]),
        "overstayed_at": _iso(allocation.get("overstayed_at")),
        "allocated_by": allocation.get("allocated_by"),
        "remarks": allocation.get("remarks"),
    }


def _rejected(action: str, exc: AllocationError, **fields) -> HTTPException:
    logger.warning(
        f"{action} rejected",
        extra={
            "extra_fields": {
                "code": exc.code,
                **safe_log_context(correlationId=get_correlation_id(), **fields),
            }
        },
    )
    return to_http_exception(exc)


# ── Routes ────────────────────────────────────────────────────────────────────


@router.post("/check-in", status_code=201)
def check_in(body: CheckInRequest) -> dict:
    """Check a member into a room.

    Returns 201 with the new allocation. 404 unknown member/room, 409 when
    the member already has an active allocation or the room is full or
    unavailable, 400 on date order, 422 for an inactive member.
    """
    try:
        allocation = ledger.check_in(
            member_id=body.member_id,
            room_id=body.room_id,
            check_in_at=body.check_in_at,
            allocated_by=body.allocated_by,
            expected_check_out_at=body.expected_check_out_at,
            remarks=body.remarks,
            correlation_id=get_correlation_id() or None,
        )
    except AllocationError as exc:
        raise _rejected("check-in", exc, member_id=body.member_id, room_id=body.room_id) from exc

    return _allocation_to_dict(allocation)


@router.get("")
def list_allocations(
    room_id: int | None = Query(None),
    member_id: int | None = Query(None),
    status: AllocationStatus | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
) -> list[dict]:
    """List allocations, newest check-in first."""
    allocations = ledger.list_allocations(
        room_id=room_id, member_id=member_id, status=status, limit=limit
    )
    return [_allocation_to_dict(a) for a in allocations]


@router.get("/{allocation_id}")
def get_allocation(allocation_id: int = Path(..., description="Allocation ID")) -> dict:
    try:
        allocation = ledger.get_allocation(allocation_id)
    except AllocationError as exc:
        raise to_http_exception(exc) from exc
    return _allocation_to_dict(allocation)


@router.post("/{allocation_id}/actions/check-out")
def check_out(body: CheckOutRequest, allocation_id: int = Path(...)) -> dict:
    """Check out; status becomes completed or early_checkout."""
    try:
        allocation = ledger.check_out(
            allocation_id=allocation_id,
            check_out_at=body.check_out_at,
            expected_date=body.expected_date,
            correlation_id=get_correlation_id() or None,
        )
    except AllocationError as exc:
        raise _rejected("check-out", exc, allocation_id=allocation_id) from exc

    return _allocation_to_dict(allocation)


@router.post("/{allocation_id}/actions/cancel")
def cancel(allocation_id: int = Path(...)) -> dict:
    """Cancel an allocation whose stay has not begun.

    "Begun" is judged against the database clock; callers cannot supply a
    reference time here.
    """
    try:
        allocation = ledger.cancel(
            allocation_id=allocation_id,
            correlation_id=get_correlation_id() or None,
        )
    except AllocationError as exc:
        raise _rejected("cancel", exc, allocation_id=allocation_id) from exc

    return _allocation_to_dict(allocation)


@router.post("/{allocation_id}/actions/mark-overstayed")
def mark_overstayed(body: AsOfRequest | None = None, allocation_id: int = Path(...)) -> dict:
    """Flag an overstay. Returns {"status": "overstayed" | "noop" | "not_overdue", ...}."""
    as_of = body.as_of if body is not None else None
    try:
        return ledger.mark_overstayed(
            allocation_id=allocation_id,
            as_of=as_of,
            correlation_id=get_correlation_id() or None,
        )
    except AllocationError as exc:
        raise _rejected("mark-overstayed", exc, allocation_id=allocation_id) from exc


@router.post("/{allocation_id}/actions/extend-stay")
def extend_stay(body: ExtendStayRequest, allocation_id: int = Path(...)) -> dict:
    try:
        allocation = ledger.extend_stay(
            allocation_id=allocation_id,
            expected_check_out_at=body.expected_check_out_at,
        )
    except AllocationError as exc:
        raise _rejected("extend-stay", exc, allocation_id=allocation_id) from exc

    return _allocation_to_dict(allocation)
