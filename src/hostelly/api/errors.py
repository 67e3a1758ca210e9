"""Map allocation errors to HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException

from hostelly.domain.errors import (
    AllocationError,
    CannotCancelActiveError,
    DuplicateActiveAllocationError,
    InvalidDateOrderError,
    MemberInactiveError,
    NotActiveError,
    NotFoundError,
    OccupancyConsistencyError,
    RoomFullError,
    RoomUnavailableError,
)

_STATUS_CODES: dict[type[AllocationError], int] = {
    NotFoundError: 404,
    DuplicateActiveAllocationError: 409,
    RoomFullError: 409,
    RoomUnavailableError: 409,
    NotActiveError: 409,
    CannotCancelActiveError: 409,
    InvalidDateOrderError: 400,
    MemberInactiveError: 422,
    OccupancyConsistencyError: 409,
}


def to_http_exception(exc: AllocationError) -> HTTPException:
    """Build the HTTPException for a domain error.

    Body: {"detail": {"code": <stable code>, "message": <text>}}
    """
    status_code = _STATUS_CODES.get(type(exc), 400)
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": str(exc)},
    )
