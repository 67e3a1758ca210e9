"""Build the FastAPI app for a deployment role.

public serves the front-desk allocation API. worker serves the same
routes plus /tasks and /internal, which the scheduler calls for overstay
sweeps, occupancy reconciles and hostel totals refreshes.
"""

import os
from typing import Literal

from fastapi import FastAPI, Request, Response

from hostelly.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

from .routers import public, worker

AppRole = Literal["public", "worker"]

_ROUTERS_BY_ROLE = {
    "public": (public.router,),
    "worker": (public.router, worker.router),
}


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create the app; role falls back to APP_ROLE, then "public"."""
    role = role or os.environ.get("APP_ROLE", "public")
    app = FastAPI(title="Hostelly", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def bind_correlation_id(request: Request, call_next) -> Response:
        # Incoming id wins over a generated one.
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response

    for router in _ROUTERS_BY_ROLE.get(role, _ROUTERS_BY_ROLE["public"]):
        app.include_router(router)
    return app
