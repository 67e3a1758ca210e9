"""Worker routes for scheduled allocation and occupancy jobs.

POST /tasks/allocations/scan-overstays     - one overstay sweep cycle
POST /tasks/rooms/{id}/reconcile           - recount occupancy from the ledger
POST /tasks/hostels/{id}/refresh-totals    - rebuild materialized hostel totals

Mounted only when APP_ROLE=worker; a scheduler calls them.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Path
from pydantic import BaseModel, ConfigDict, Field

from hostelly.api.errors import to_http_exception
from hostelly.domain import capacity, occupancy, overstay
from hostelly.domain.errors import AllocationError, OccupancyConsistencyError
from hostelly.observability.correlation import get_correlation_id
from hostelly.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["tasks"])


class ScanOverstaysRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    as_of: datetime | None = None
    limit: int | None = Field(None, ge=1, le=5000)


@router.post("/tasks/allocations/scan-overstays")
def scan_overstays_task(body: ScanOverstaysRequest | None = None) -> dict:
    """Run one overstay sweep and return its summary."""
    body = body or ScanOverstaysRequest()
    logger.info(
        "overstay sweep task received",
        extra={"extra_fields": {"correlationId": get_correlation_id()}},
    )
    return overstay.scan_overstays(as_of=body.as_of, limit=body.limit)


@router.post("/tasks/rooms/{room_id}/reconcile")
def reconcile_room_task(room_id: int = Path(...)) -> dict:
    """Recompute a room's occupancy counter from its allocations.

    409 if the ledger itself is over capacity (needs manual resolution).
    """
    try:
        return occupancy.recompute_room_occupancy(room_id)
    except OccupancyConsistencyError as exc:
        logger.error(
            "room ledger over capacity",
            extra={"extra_fields": {"room_id": room_id}},
        )
        raise to_http_exception(exc) from exc
    except AllocationError as exc:
        raise to_http_exception(exc) from exc


@router.post("/tasks/hostels/{hostel_id}/refresh-totals")
def refresh_hostel_totals_task(hostel_id: int = Path(...)) -> dict:
    try:
        return capacity.refresh_hostel_totals(hostel_id)
    except AllocationError as exc:
        raise to_http_exception(exc) from exc
