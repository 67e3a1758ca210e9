"""Public-facing routes (APP_ROLE=public): front desk and collaborators."""

from fastapi import APIRouter

from hostelly.api.routes import allocations, hostels, outbox, rooms

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(allocations.router)
router.include_router(rooms.router)
router.include_router(hostels.router)
router.include_router(outbox.router)
