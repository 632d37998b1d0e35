"""API routes."""

from labor_settlement.api.routes.health import router as health_router
from labor_settlement.api.routes.pay_runs import router as pay_runs_router
from labor_settlement.api.routes.schedules import router as schedules_router
from labor_settlement.api.routes.time_records import router as time_records_router

__all__ = ["health_router", "pay_runs_router", "schedules_router", "time_records_router"]
