"""ORM models for the labor settlement engine."""

from labor_settlement.models.base import Base, TimestampMixin
from labor_settlement.models.directory import Company, CostCode, Project, Trade, Worker
from labor_settlement.models.payroll import PayRun, PayRunItem, TimeRecord
from labor_settlement.models.scheduling import ScheduleEntry

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "CostCode",
    "Project",
    "Trade",
    "Worker",
    "ScheduleEntry",
    "TimeRecord",
    "PayRun",
    "PayRunItem",
]
