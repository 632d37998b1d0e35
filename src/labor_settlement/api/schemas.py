"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from labor_settlement.calculators.types import GroupPaymentStatus


# ============================================================================
# Schedule schemas
# ============================================================================


class ScheduleCreate(BaseModel):
    """Schema for creating a schedule entry."""

    worker_id: UUID
    project_id: UUID
    scheduled_date: date
    scheduled_hours: Decimal
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    notes: str | None = None
    status: str = "planned"
    created_by: UUID | None = None


class ScheduleUpdate(BaseModel):
    """Partial update of a schedule entry; only fields sent are applied."""

    worker_id: UUID | None = None
    project_id: UUID | None = None
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    scheduled_date: date | None = None
    scheduled_hours: Decimal | None = None
    notes: str | None = None
    status: str | None = None


class ScheduleResponse(BaseModel):
    """Schema for schedule entry response."""

    model_config = ConfigDict(from_attributes=True)

    schedule_id: UUID
    worker_id: UUID
    project_id: UUID
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    scheduled_date: date
    scheduled_hours: Decimal
    notes: str | None = None
    status: str
    converted: bool
    created_by: UUID | None = None
    created_at: datetime


class ScheduleListResponse(BaseModel):
    """Schema for listing schedule entries."""

    items: list[ScheduleResponse]
    total: int


class ScheduleDayGroupResponse(BaseModel):
    """One worker's schedule for one day."""

    model_config = ConfigDict(from_attributes=True)

    worker_id: UUID
    scheduled_date: date
    total_hours: Decimal
    schedule_ids: list[UUID]
    project_ids: list[UUID]


class AllocationIn(BaseModel):
    """One target line of a split."""

    project_id: UUID
    hours: Decimal
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    notes: str | None = None


class SplitRequest(BaseModel):
    """Split one entry, or a worker's whole day, across projects."""

    schedule_id: UUID | None = None
    worker_id: UUID | None = None
    day: date | None = None
    allocations: list[AllocationIn] = Field(min_length=1)
    created_by: UUID | None = None


class ConvertRequest(BaseModel):
    """Schedule entries to convert into time records."""

    schedule_ids: list[UUID] = Field(min_length=1)
    created_by: UUID | None = None


class ConvertDueRequest(BaseModel):
    """Convert every entry due on or before ``as_of`` (today by default)."""

    as_of: date | None = None
    created_by: UUID | None = None


# ============================================================================
# Time record schemas
# ============================================================================


class TimeRecordCreate(BaseModel):
    """Schema for a hand-entered time record."""

    worker_id: UUID
    project_id: UUID
    work_date: date
    hours_worked: Decimal
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    notes: str | None = None
    source_schedule_id: UUID | None = None
    created_by: UUID | None = None


class TimeRecordUpdate(BaseModel):
    """Partial update of a time record. Payment fields are not accepted."""

    model_config = ConfigDict(extra="forbid")

    work_date: date | None = None
    hours_worked: Decimal | None = None
    project_id: UUID | None = None
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    notes: str | None = None


class TimeRecordResponse(BaseModel):
    """Schema for time record response."""

    model_config = ConfigDict(from_attributes=True)

    time_record_id: UUID
    worker_id: UUID
    project_id: UUID
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    work_date: date
    hours_worked: Decimal
    labor_cost: Decimal
    notes: str | None = None
    payment_status: str
    payment_date: date | None = None
    source_schedule_id: UUID | None = None
    created_by: UUID | None = None
    created_at: datetime


class TimeRecordListResponse(BaseModel):
    """Schema for listing time records."""

    items: list[TimeRecordResponse]
    total: int


class UnpaidSummaryResponse(BaseModel):
    """Totals over unpaid time records."""

    model_config = ConfigDict(from_attributes=True)

    total_records: int
    total_hours: Decimal
    total_amount: Decimal
    workers_count: int


class ProjectSplitResponse(BaseModel):
    """One project's share of a worker-day group."""

    model_config = ConfigDict(from_attributes=True)

    time_record_id: UUID
    project_id: UUID
    hours: Decimal
    cost: Decimal
    payment_status: str
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    notes: str | None = None
    source_schedule_id: UUID | None = None


class WorkerDayGroupResponse(BaseModel):
    """Time records for one worker on one day."""

    model_config = ConfigDict(from_attributes=True)

    worker_id: UUID
    work_date: date
    total_hours: Decimal
    total_cost: Decimal
    payment_status: GroupPaymentStatus
    can_split: bool
    projects: list[ProjectSplitResponse]


# ============================================================================
# Pay run schemas
# ============================================================================


class PayRunCreate(BaseModel):
    """Schema for building a draft pay run from unpaid time records."""

    date_range_start: date
    date_range_end: date
    payer_company_id: UUID | None = None
    payee_company_id: UUID | None = None
    worker_id: UUID | None = None
    project_id: UUID | None = None
    time_record_ids: list[UUID] = Field(default_factory=list)
    select_all: bool = False
    created_by: UUID | None = None

    @model_validator(mode="after")
    def check_selection(self) -> "PayRunCreate":
        if not self.select_all and not self.time_record_ids:
            raise ValueError("time_record_ids is required unless select_all is set")
        return self


class PayRunResponse(BaseModel):
    """Schema for pay run response."""

    model_config = ConfigDict(from_attributes=True)

    pay_run_id: UUID
    date_range_start: date
    date_range_end: date
    payer_company_id: UUID | None = None
    payee_company_id: UUID | None = None
    status: str
    total_amount: Decimal
    payment_date: date | None = None
    paid_at: datetime | None = None
    created_by: UUID | None = None
    created_at: datetime


class PayRunListResponse(BaseModel):
    """Schema for listing pay runs."""

    items: list[PayRunResponse]
    total: int


class PayRunItemResponse(BaseModel):
    """Schema for pay run item response."""

    model_config = ConfigDict(from_attributes=True)

    pay_run_item_id: UUID
    pay_run_id: UUID
    time_record_id: UUID
    worker_id: UUID
    hours: Decimal
    rate: Decimal
    amount: Decimal


class PayRunItemListResponse(BaseModel):
    """Schema for listing pay run items."""

    items: list[PayRunItemResponse]
    total: int


class WorkerTotalResponse(BaseModel):
    """Per-worker totals inside a pay run."""

    model_config = ConfigDict(from_attributes=True)

    worker_id: UUID
    item_count: int
    hours: Decimal
    amount: Decimal


class PayRunSummaryResponse(BaseModel):
    """Counts and totals of a pay run."""

    model_config = ConfigDict(from_attributes=True)

    pay_run_id: UUID
    status: str
    item_count: int
    total_hours: Decimal
    total_amount: Decimal
    items_amount: Decimal
    is_balanced: bool
    workers: list[WorkerTotalResponse]


class MarkPaidRequest(BaseModel):
    """Settle a draft pay run."""

    payment_date: date | None = None


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
