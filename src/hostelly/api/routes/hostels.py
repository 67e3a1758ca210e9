"""Hostel capacity endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Path

from hostelly.api.errors import to_http_exception
from hostelly.domain import capacity
from hostelly.domain.errors import AllocationError

router = APIRouter(prefix="/hostels", tags=["hostels"])


@router.get("/{hostel_id}/capacity")
def get_hostel_capacity(hostel_id: int = Path(..., description="Hostel ID")) -> dict:
    """Live capacity aggregated over the hostel's active rooms."""
    try:
        return capacity.hostel_capacity(hostel_id)
    except AllocationError as exc:
        raise to_http_exception(exc) from exc
