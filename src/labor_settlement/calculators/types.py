"""Value types shared by the calculators and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PaymentStatus(str, Enum):
    """Time record payment status."""

    UNPAID = "unpaid"
    PAID = "paid"


class GroupPaymentStatus(str, Enum):
    """Payment status of a worker-day group of time records."""

    UNPAID = "unpaid"
    PAID = "paid"
    PARTIAL = "partial"


class ScheduleStatus(str, Enum):
    """Schedule entry lifecycle status."""

    PLANNED = "planned"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Allocation:
    """One target line of a split: hours on a project."""

    project_id: UUID
    hours: Decimal
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    notes: str | None = None


@dataclass
class ProjectSplit:
    """One project's share of a worker-day group."""

    time_record_id: UUID
    project_id: UUID
    hours: Decimal
    cost: Decimal
    payment_status: str
    trade_id: UUID | None = None
    cost_code_id: UUID | None = None
    notes: str | None = None
    source_schedule_id: UUID | None = None


@dataclass
class WorkerDayGroup:
    """Time records for one worker on one day."""

    worker_id: UUID
    work_date: date
    total_hours: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    payment_status: GroupPaymentStatus = GroupPaymentStatus.UNPAID
    projects: list[ProjectSplit] = field(default_factory=list)

    @property
    def time_record_ids(self) -> list[UUID]:
        return [p.time_record_id for p in self.projects]

    @property
    def can_split(self) -> bool:
        """Only single-project days are offered for splitting."""
        return len(self.projects) == 1


@dataclass
class ScheduleDayGroup:
    """Schedule entries for one worker on one day."""

    worker_id: UUID
    scheduled_date: date
    total_hours: Decimal = Decimal("0")
    schedule_ids: list[UUID] = field(default_factory=list)
    project_ids: list[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class UnpaidSummary:
    """Totals over a set of unpaid time records."""

    total_records: int
    total_hours: Decimal
    total_amount: Decimal
    workers_count: int


@dataclass(frozen=True)
class WorkerTotal:
    """Per-worker totals inside a pay run."""

    worker_id: UUID
    item_count: int
    hours: Decimal
    amount: Decimal


@dataclass(frozen=True)
class PayRunSummary:
    """Read-side summary of a pay run and its items."""

    pay_run_id: UUID
    status: str
    item_count: int
    total_hours: Decimal
    total_amount: Decimal
    items_amount: Decimal
    workers: list[WorkerTotal]

    @property
    def is_balanced(self) -> bool:
        """True while the frozen total still matches the items."""
        return self.total_amount == self.items_amount
