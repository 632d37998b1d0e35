"""Health check endpoints."""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement import __version__
from labor_settlement.api.dependencies import Clock, DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status with the date the lock and conversion rules use."""

    status: str
    database: str
    version: str
    business_date: date
    checked_at: datetime


async def _database_reachable(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Database ping failed: %s", exc)
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, today: Clock) -> HealthResponse:
    """Report API and database health."""
    reachable = await _database_reachable(db)
    return HealthResponse(
        status="healthy" if reachable else "degraded",
        database="healthy" if reachable else "unhealthy",
        version=__version__,
        business_date=today(),
        checked_at=datetime.now(timezone.utc),
    )


@router.get("/ready")
async def readiness_check(db: DbSession) -> JSONResponse:
    """Ready once the database answers; 503 otherwise."""
    if await _database_reachable(db):
        return JSONResponse({"status": "ready"})
    return JSONResponse(
        {"status": "unavailable"},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
