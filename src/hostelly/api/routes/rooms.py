"""Room capacity endpoints.

GET   /rooms/{id}/capacity  -> capacity figures
GET   /rooms/{id}/headroom  -> can the room take one more occupant
PATCH /rooms/{id}/status    -> administrative status (maintenance, reserved, ...)
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException, Path
from pydantic import BaseModel, ConfigDict

from hostelly.api.errors import to_http_exception
from hostelly.domain import capacity, occupancy
from hostelly.domain.errors import AllocationError
from hostelly.observability.correlation import get_correlation_id
from hostelly.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


class UpdateRoomStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["available", "occupied", "under_maintenance", "reserved", "out_of_service"]


@router.get("/{room_id}/capacity")
def get_room_capacity(room_id: int = Path(..., description="Room ID")) -> dict:
    try:
        return capacity.capacity_of(room_id)
    except AllocationError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{room_id}/headroom")
def get_room_headroom(room_id: int = Path(..., description="Room ID")) -> dict:
    try:
        ok = capacity.has_headroom(room_id)
    except AllocationError as exc:
        raise to_http_exception(exc) from exc
    return {"room_id": room_id, "has_headroom": ok}


@router.patch("/{room_id}/status")
def update_room_status(body: UpdateRoomStatusRequest, room_id: int = Path(...)) -> dict:
    """Set a room's administrative status.

    Occupants stay when a room is blocked; only new check-ins are refused.
    """
    try:
        result = occupancy.set_room_status(room_id, body.status)
    except AllocationError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "room status updated via api",
        extra={
            "extra_fields": {
                "correlationId": get_correlation_id(),
                "room_id": room_id,
                "status": result["status"],
            }
        },
    )
    return result
