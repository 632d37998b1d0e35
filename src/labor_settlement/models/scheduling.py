"""Planned labor: schedule entries."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from labor_settlement.models.base import Base, TimestampMixin


class ScheduleEntry(Base, TimestampMixin):
    """A worker planned on a project for a day.

    Several entries may exist for the same (worker, project, day). The set of
    entries for a (worker, day) is what the split engine redistributes.
    """

    __tablename__ = "schedule_entry"

    schedule_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("worker.worker_id"),
        nullable=False,
    )
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("project.project_id"),
        nullable=False,
    )
    trade_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("trade.trade_id"),
        nullable=True,
    )
    cost_code_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("cost_code.cost_code_id"),
        nullable=True,
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_hours: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="planned")
    # Set while a time record links back to this entry.
    converted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    __table_args__ = (
        CheckConstraint("scheduled_hours > 0", name="schedule_entry_hours_positive"),
        CheckConstraint(
            "status IN ('planned', 'confirmed', 'cancelled')",
            name="schedule_entry_status_check",
        ),
        Index("ix_schedule_entry_worker_date", "worker_id", "scheduled_date"),
        Index("ix_schedule_entry_date", "scheduled_date"),
    )
