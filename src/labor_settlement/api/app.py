"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from labor_settlement import __version__
from labor_settlement.config import get_settings
from labor_settlement.api.routes import (
    health_router,
    pay_runs_router,
    schedules_router,
    time_records_router,
)
from labor_settlement.database import dispose_db, init_db
from labor_settlement.errors import (
    AllocationMismatchError,
    AlreadyClaimedError,
    LaborPipelineError,
    LockedError,
)

logger = logging.getLogger(__name__)

# Domain error code -> HTTP status
ERROR_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "ALLOCATION_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "LOCKED": status.HTTP_409_CONFLICT,
    "ALREADY_SETTLED": status.HTTP_409_CONFLICT,
    "ALREADY_CLAIMED": status.HTTP_409_CONFLICT,
    "ALREADY_CONVERTED": status.HTTP_409_CONFLICT,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "PARTIAL_FAILURE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_context(exc: LaborPipelineError) -> dict | None:
    if isinstance(exc, LockedError) and exc.time_record_id is not None:
        return {"time_record_id": str(exc.time_record_id)}
    if isinstance(exc, AllocationMismatchError):
        return {"expected": str(exc.expected), "actual": str(exc.actual)}
    if isinstance(exc, AlreadyClaimedError):
        return {"time_record_ids": [str(i) for i in exc.time_record_ids]}
    return None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Labor Settlement API",
        description="Crew scheduling to payroll settlement pipeline",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(get_settings().cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(LaborPipelineError)
    async def pipeline_exception_handler(
        request: Request, exc: LaborPipelineError
    ) -> JSONResponse:
        """Map domain errors to HTTP responses."""
        status_code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        content = {"detail": str(exc), "code": exc.code}
        context = _error_context(exc)
        if context is not None:
            content["context"] = context
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(schedules_router, prefix="/api/v1")
    app.include_router(time_records_router, prefix="/api/v1")
    app.include_router(pay_runs_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
