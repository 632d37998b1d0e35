"""Reference directory models: companies, workers, projects, trades, cost codes.

The pipeline reads these and never writes them.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from labor_settlement.models.base import Base, TimestampMixin


class Company(Base, TimestampMixin):
    """Paying or payee company."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)


class Trade(Base, TimestampMixin):
    """Trade (carpentry, electrical, ...)."""

    __tablename__ = "trade"

    trade_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)


class CostCode(Base, TimestampMixin):
    """Job-costing code labor is booked against."""

    __tablename__ = "cost_code"

    cost_code_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    trade_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("trade.trade_id"),
        nullable=True,
    )

    __table_args__ = (UniqueConstraint("code", name="cost_code_code_unique"),)


class Worker(Base, TimestampMixin):
    """Worker with a current hourly rate."""

    __tablename__ = "worker"

    worker_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("company.company_id"),
        nullable=True,
    )
    trade_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("trade.trade_id"),
        nullable=True,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="worker_hourly_rate_check"),
    )


class Project(Base, TimestampMixin):
    """Project labor is scheduled on; company_id is the paying company."""

    __tablename__ = "project"

    project_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    company_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("company.company_id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'on_hold', 'completed', 'archived')",
            name="project_status_check",
        ),
    )
