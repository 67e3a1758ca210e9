"""Worker/internal routes (APP_ROLE=worker): scheduled sweeps and repairs."""

from fastapi import APIRouter

from hostelly.api.routes import tasks_allocations

router = APIRouter()


@router.get("/tasks/health")
def tasks_health() -> dict:
    """Tasks subsystem health check."""
    return {"status": "ok", "subsystem": "tasks"}


@router.get("/internal/health")
def internal_health() -> dict:
    """Internal subsystem health check."""
    return {"status": "ok", "subsystem": "internal"}


router.include_router(tasks_allocations.router)
