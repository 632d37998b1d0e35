"""Time record store: worked labor awaiting or past payment."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.calculators.cost import CostCalculator
from labor_settlement.calculators.grouping import group_time_records, summarize_unpaid
from labor_settlement.calculators.rate_resolver import RateResolver
from labor_settlement.calculators.types import PaymentStatus, UnpaidSummary, WorkerDayGroup
from labor_settlement.database import atomic
from labor_settlement.errors import AlreadyConvertedError, LockedError, NotFoundError, ValidationError
from labor_settlement.models import PayRunItem, Project, ScheduleEntry, TimeRecord
from labor_settlement.services.directory import DirectoryService

logger = logging.getLogger(__name__)


async def release_claim(session: AsyncSession, time_record_id: UUID) -> UUID | None:
    """Drop a record's pay run item.

    The batch total_amount stays as frozen at build time; the pay run
    summary reports the gap through items_amount. Only unpaid records may
    be released; callers check that first. Returns the pay run the record
    was released from, if any.
    """
    result = await session.execute(
        select(PayRunItem).where(PayRunItem.time_record_id == time_record_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        return None

    await session.execute(delete(PayRunItem).where(PayRunItem.pay_run_item_id == item.pay_run_item_id))
    logger.info("Released time record %s from pay run %s", time_record_id, item.pay_run_id)
    return item.pay_run_id


class TimeRecordService:
    """Service owning time records.

    Payment fields are not writable here. Only the settlement service marks a
    record paid.
    """

    EDITABLE_FIELDS = frozenset(
        {"work_date", "hours_worked", "project_id", "trade_id", "cost_code_id", "notes"}
    )

    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = DirectoryService(session)
        self.rate_resolver = RateResolver(session)

    async def create(
        self,
        worker_id: UUID | None,
        project_id: UUID | None,
        work_date: date | None,
        hours_worked: Decimal | int | float | str | None,
        trade_id: UUID | None = None,
        cost_code_id: UUID | None = None,
        notes: str | None = None,
        source_schedule_id: UUID | None = None,
        created_by: UUID | None = None,
    ) -> TimeRecord:
        """Record hand-entered hours.

        The worker's current rate is read once here and frozen into
        labor_cost. When ``source_schedule_id`` is given the schedule entry
        stays in place and is marked converted (a log created ahead of the
        plan).
        """
        if worker_id is None:
            raise ValidationError("worker_id is required")
        if project_id is None:
            raise ValidationError("project_id is required")
        if work_date is None:
            raise ValidationError("work_date is required")
        hours = CostCalculator.require_positive_hours(hours_worked, "hours_worked")

        await self.directory.require_references(
            project_id=project_id,
            trade_id=trade_id,
            cost_code_id=cost_code_id,
        )
        rate = await self.rate_resolver.resolve_hourly_rate(worker_id)

        entry = None
        if source_schedule_id is not None:
            entry = await self.session.get(ScheduleEntry, source_schedule_id)
            if entry is None:
                raise NotFoundError("ScheduleEntry", source_schedule_id)
            existing = await self._find_by_schedule(source_schedule_id)
            if entry.converted or existing is not None:
                raise AlreadyConvertedError(
                    source_schedule_id,
                    existing.time_record_id if existing is not None else None,
                )

        record = TimeRecord(
            worker_id=worker_id,
            project_id=project_id,
            trade_id=trade_id,
            cost_code_id=cost_code_id,
            work_date=work_date,
            hours_worked=hours,
            labor_cost=CostCalculator.labor_cost(hours, rate),
            notes=notes,
            payment_status=PaymentStatus.UNPAID.value,
            payment_date=None,
            source_schedule_id=source_schedule_id,
            created_by=created_by,
        )

        async with atomic(self.session, "create time record"):
            self.session.add(record)
            if entry is not None:
                entry.converted = True

        logger.info(
            "Logged %sh for worker %s on %s at %s/h (cost %s)",
            hours,
            worker_id,
            work_date,
            rate,
            record.labor_cost,
        )
        return record

    async def get(self, time_record_id: UUID) -> TimeRecord:
        """Load a time record or raise NotFoundError."""
        record = await self.session.get(TimeRecord, time_record_id)
        if record is None:
            raise NotFoundError("TimeRecord", time_record_id)
        return record

    async def claiming_pay_run_id(self, time_record_id: UUID) -> UUID | None:
        """Get the pay run holding this record, if any."""
        result = await self.session.execute(
            select(PayRunItem.pay_run_id).where(PayRunItem.time_record_id == time_record_id)
        )
        return result.scalar_one_or_none()

    async def update(self, time_record_id: UUID, **patch: Any) -> TimeRecord:
        """Apply a partial update to an unpaid, unclaimed record.

        A change of hours rescales labor_cost at the record's own effective
        rate; the worker's current rate is never consulted.
        """
        unknown = set(patch) - self.EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        record = await self.get(time_record_id)
        await self._ensure_mutable(record)

        for required in ("work_date", "project_id"):
            if required in patch and patch[required] is None:
                raise ValidationError(f"{required} cannot be cleared")
        await self.directory.require_references(
            project_id=patch.get("project_id"),
            trade_id=patch.get("trade_id"),
            cost_code_id=patch.get("cost_code_id"),
        )

        if "hours_worked" in patch:
            hours = CostCalculator.require_positive_hours(patch["hours_worked"], "hours_worked")
            rate = CostCalculator.effective_rate(record.labor_cost, record.hours_worked)
            patch["hours_worked"] = hours
            patch["labor_cost"] = CostCalculator.labor_cost(hours, rate)

        async with atomic(self.session, "update time record"):
            for field, value in patch.items():
                setattr(record, field, value)

        logger.info("Updated time record %s: %s", time_record_id, sorted(patch))
        return record

    async def delete(self, time_record_id: UUID) -> None:
        """Delete an unpaid record and its pay run item.

        A draft pay run holding the record loses the item. A
        schedule entry the record came from is not recreated. If the entry
        still exists (record logged early) it becomes convertible again.
        """
        record = await self.get(time_record_id)
        if record.is_paid:
            raise LockedError(f"Time record {time_record_id} is paid and cannot be deleted")

        async with atomic(self.session, "delete time record"):
            await release_claim(self.session, time_record_id)
            if record.source_schedule_id is not None:
                await self.session.execute(
                    update(ScheduleEntry)
                    .where(ScheduleEntry.schedule_id == record.source_schedule_id)
                    .values(converted=False)
                )
            await self.session.delete(record)

        logger.info("Deleted time record %s", time_record_id)

    async def list_unpaid(
        self,
        start: date | None = None,
        end: date | None = None,
        company_id: UUID | None = None,
        worker_id: UUID | None = None,
        project_id: UUID | None = None,
        include_claimed: bool = False,
    ) -> list[TimeRecord]:
        """Unpaid records, oldest first.

        Records already held by a pay run are left out unless
        ``include_claimed`` is set. ``company_id`` matches the paying company
        of the record's project.
        """
        if start is not None and end is not None and end < start:
            raise ValidationError("end date must not precede start date")

        query = select(TimeRecord).where(TimeRecord.payment_status == PaymentStatus.UNPAID.value)
        if start is not None:
            query = query.where(TimeRecord.work_date >= start)
        if end is not None:
            query = query.where(TimeRecord.work_date <= end)
        if worker_id is not None:
            query = query.where(TimeRecord.worker_id == worker_id)
        if project_id is not None:
            query = query.where(TimeRecord.project_id == project_id)
        if company_id is not None:
            query = query.join(Project, Project.project_id == TimeRecord.project_id).where(
                Project.company_id == company_id
            )
        if not include_claimed:
            query = query.where(TimeRecord.time_record_id.not_in(select(PayRunItem.time_record_id)))
        query = query.order_by(TimeRecord.work_date, TimeRecord.worker_id, TimeRecord.created_at)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def unpaid_summary(self, **filters: Any) -> UnpaidSummary:
        """Totals over ``list_unpaid`` with the same filters."""
        return summarize_unpaid(await self.list_unpaid(**filters))

    async def list_range(
        self,
        start: date,
        end: date,
        worker_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> list[TimeRecord]:
        """All records between two dates inclusive, paid or not."""
        if end < start:
            raise ValidationError("end date must not precede start date")

        query = select(TimeRecord).where(TimeRecord.work_date >= start, TimeRecord.work_date <= end)
        if worker_id is not None:
            query = query.where(TimeRecord.worker_id == worker_id)
        if project_id is not None:
            query = query.where(TimeRecord.project_id == project_id)
        query = query.order_by(TimeRecord.work_date, TimeRecord.worker_id, TimeRecord.created_at)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def grouped_by_worker_day(
        self,
        start: date,
        end: date,
        worker_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> list[WorkerDayGroup]:
        """Records grouped by worker and day, with a paid/unpaid/partial status."""
        return group_time_records(await self.list_range(start, end, worker_id, project_id))

    async def _find_by_schedule(self, schedule_id: UUID) -> TimeRecord | None:
        result = await self.session.execute(
            select(TimeRecord).where(TimeRecord.source_schedule_id == schedule_id)
        )
        return result.scalar_one_or_none()

    async def _ensure_mutable(self, record: TimeRecord) -> None:
        if record.is_paid:
            raise LockedError(f"Time record {record.time_record_id} is paid and cannot be edited")
        pay_run_id = await self.claiming_pay_run_id(record.time_record_id)
        if pay_run_id is not None:
            raise LockedError(
                f"Time record {record.time_record_id} is part of pay run {pay_run_id}; "
                "delete the draft pay run to edit it",
                time_record_id=record.time_record_id,
            )
