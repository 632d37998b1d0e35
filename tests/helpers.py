"""Shared constants and helpers for labor settlement tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.models import PayRun, TimeRecord, Worker
from labor_settlement.services.pay_run_builder import PayRunBuilder
from labor_settlement.services.settlement_service import SettlementService
from labor_settlement.services.time_record_service import TimeRecordService

# Fixed "today" used by services that apply the edit lock.
TODAY = date(2024, 6, 15)
YESTERDAY = date(2024, 6, 14)
TOMORROW = date(2024, 6, 16)


@dataclass(frozen=True)
class Seed:
    """Ids of the reference data every test can rely on.

    Plain ids rather than ORM instances: a rollback inside a test expires
    every instance in the session.
    """

    payer_id: UUID
    other_company_id: UUID
    carpentry_id: UUID
    framing_id: UUID
    alice_id: UUID  # $20/hr
    bob_id: UUID  # $30/hr
    project_a_id: UUID
    project_b_id: UUID
    project_c_id: UUID  # paid by other_company


async def set_hourly_rate(session: AsyncSession, worker_id: UUID, rate: Decimal) -> None:
    """Change a worker's current rate and commit."""
    await session.execute(
        update(Worker).where(Worker.worker_id == worker_id).values(hourly_rate=rate)
    )
    await session.commit()


async def log_hours(
    session: AsyncSession,
    worker_id: UUID,
    project_id: UUID,
    work_date: date,
    hours: str | Decimal,
) -> TimeRecord:
    """Create and commit a manual time record."""
    record = await TimeRecordService(session).create(
        worker_id=worker_id,
        project_id=project_id,
        work_date=work_date,
        hours_worked=Decimal(hours),
    )
    await session.commit()
    return record


async def build_pay_run(
    session: AsyncSession,
    start: date,
    end: date,
    time_record_ids: list[UUID] | None = None,
    payer_company_id: UUID | None = None,
) -> PayRun:
    """Build and commit a draft pay run; selects everything when no ids are given."""
    builder = PayRunBuilder(session)
    builder.set_range(start, end, payer_company_id=payer_company_id)
    await builder.fetch_candidates()
    if time_record_ids is None:
        builder.select_all()
    else:
        await builder.select(time_record_ids)
    pay_run = await builder.build()
    await session.commit()
    return pay_run


async def settle(
    session: AsyncSession,
    start: date,
    end: date,
    time_record_ids: list[UUID] | None = None,
    payment_date: date | None = None,
) -> PayRun:
    """Build a pay run and mark it paid."""
    pay_run = await build_pay_run(session, start, end, time_record_ids)
    pay_run = await SettlementService(session).mark_paid(
        pay_run.pay_run_id, payment_date=payment_date or end
    )
    await session.commit()
    return pay_run
