"""Worked labor and payroll models: time records, pay runs, pay run items."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from labor_settlement.models.base import Base, TimestampMixin


class TimeRecord(Base, TimestampMixin):
    """A costed unit of worked labor.

    labor_cost is a snapshot of hours_worked * hourly_rate taken when the
    record is created. It is never re-derived from the worker's current rate.
    """

    __tablename__ = "time_record"

    time_record_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
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
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours_worked: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False)
    # Scale covers hours (4 places) times rate (4 places) exactly.
    labor_cost: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_status: Mapped[str] = mapped_column(String, nullable=False, default="unpaid")
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Non-owning link; the schedule entry is usually gone after conversion.
    source_schedule_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        unique=True,
    )
    created_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    __table_args__ = (
        CheckConstraint("hours_worked > 0", name="time_record_hours_positive"),
        CheckConstraint(
            "payment_status IN ('unpaid', 'paid')",
            name="time_record_payment_status_check",
        ),
        CheckConstraint(
            "payment_status = 'paid' OR payment_date IS NULL",
            name="time_record_payment_date_check",
        ),
        Index("ix_time_record_status_date", "payment_status", "work_date"),
        Index("ix_time_record_worker_date", "worker_id", "work_date"),
    )

    @property
    def is_paid(self) -> bool:
        """Check if the record has been settled."""
        return self.payment_status == "paid"


class PayRun(Base, TimestampMixin):
    """Payroll batch of time records; total_amount is frozen at build time."""

    __tablename__ = "pay_run"

    pay_run_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    date_range_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_range_end: Mapped[date] = mapped_column(Date, nullable=False)
    payer_company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("company.company_id"),
        nullable=True,
    )
    payee_company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("company.company_id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False, default=Decimal("0"))
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'paid')", name="pay_run_status_check"),
        CheckConstraint("date_range_end >= date_range_start", name="pay_run_dates_check"),
    )

    # Relationships
    items: Mapped[list[PayRunItem]] = relationship(
        back_populates="pay_run",
        order_by="PayRunItem.created_at",
    )


class PayRunItem(Base, TimestampMixin):
    """One time record bound to one pay run."""

    __tablename__ = "pay_run_item"

    pay_run_item_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    pay_run_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("pay_run.pay_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    time_record_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("time_record.time_record_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("worker.worker_id"),
        nullable=False,
    )
    hours: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(14, 6), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)

    __table_args__ = (
        UniqueConstraint("pay_run_id", "time_record_id", name="pay_run_item_run_record_unique"),
        # A time record can be claimed by one live pay run only.
        UniqueConstraint("time_record_id", name="pay_run_item_time_record_unique"),
    )

    # Relationships
    pay_run: Mapped[PayRun] = relationship(back_populates="items")
