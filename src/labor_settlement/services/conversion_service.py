"""Conversion service: schedule entries become costed time records."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.calculators.cost import CostCalculator
from labor_settlement.calculators.rate_resolver import RateResolver
from labor_settlement.calculators.types import PaymentStatus, ScheduleStatus
from labor_settlement.database import atomic
from labor_settlement.errors import AlreadyConvertedError, NotFoundError, ValidationError
from labor_settlement.models import ScheduleEntry, TimeRecord

logger = logging.getLogger(__name__)


class ConversionService:
    """Turns schedule entries into time records.

    Each converted entry yields exactly one unpaid time record whose
    labor_cost is computed from the worker's rate at this moment, and the
    entry itself is removed. All records are created and all entries deleted
    in one unit of work, so a unit of labor is never represented twice or
    not at all.

    There is no reverse operation.
    """

    def __init__(self, session: AsyncSession, today: Callable[[], date] = date.today):
        self.session = session
        self.today = today
        self.rate_resolver = RateResolver(session)

    async def convert(
        self,
        schedule_ids: Sequence[UUID],
        created_by: UUID | None = None,
    ) -> list[TimeRecord]:
        """Convert the given schedule entries.

        Returns:
            The created time records, in the order of ``schedule_ids``

        Raises:
            ValidationError: No ids, duplicate ids or a cancelled entry
            NotFoundError: An entry or its worker does not exist
            AlreadyConvertedError: An entry already has a time record
            PartialFailureError: The write failed; nothing was converted
        """
        if not schedule_ids:
            raise ValidationError("At least one schedule entry is required")
        if len(set(schedule_ids)) != len(schedule_ids):
            raise ValidationError("Duplicate schedule entry ids")

        entries = await self._load_entries(schedule_ids)
        await self._check_unconverted(entries)

        rates = await self.rate_resolver.resolve_hourly_rates(e.worker_id for e in entries)

        records = [
            TimeRecord(
                worker_id=entry.worker_id,
                project_id=entry.project_id,
                trade_id=entry.trade_id,
                cost_code_id=entry.cost_code_id,
                work_date=entry.scheduled_date,
                hours_worked=entry.scheduled_hours,
                labor_cost=CostCalculator.labor_cost(entry.scheduled_hours, rates[entry.worker_id]),
                notes=entry.notes,
                payment_status=PaymentStatus.UNPAID.value,
                payment_date=None,
                source_schedule_id=entry.schedule_id,
                created_by=created_by if created_by is not None else entry.created_by,
            )
            for entry in entries
        ]

        async with atomic(self.session, "convert schedule entries"):
            self.session.add_all(records)
            for entry in entries:
                await self.session.delete(entry)

        logger.info(
            "Converted %d schedule entr%s into time records totalling %s",
            len(records),
            "y" if len(records) == 1 else "ies",
            sum(r.labor_cost for r in records),
        )
        return records

    async def convert_due(
        self,
        as_of: date | None = None,
        created_by: UUID | None = None,
    ) -> list[TimeRecord]:
        """Convert every unconverted, non-cancelled entry dated on or before ``as_of``."""
        as_of = as_of or self.today()

        linked = select(TimeRecord.source_schedule_id).where(
            TimeRecord.source_schedule_id.is_not(None)
        )
        result = await self.session.execute(
            select(ScheduleEntry.schedule_id)
            .where(
                ScheduleEntry.scheduled_date <= as_of,
                ScheduleEntry.converted.is_(False),
                ScheduleEntry.status != ScheduleStatus.CANCELLED.value,
                ScheduleEntry.schedule_id.not_in(linked),
            )
            .order_by(ScheduleEntry.scheduled_date, ScheduleEntry.created_at)
        )
        due_ids = list(result.scalars().all())

        if not due_ids:
            logger.info("No schedule entries due for conversion as of %s", as_of)
            return []

        return await self.convert(due_ids, created_by=created_by)

    async def _load_entries(self, schedule_ids: Sequence[UUID]) -> list[ScheduleEntry]:
        result = await self.session.execute(
            select(ScheduleEntry).where(ScheduleEntry.schedule_id.in_(schedule_ids))
        )
        by_id = {entry.schedule_id: entry for entry in result.scalars().all()}

        for schedule_id in schedule_ids:
            if schedule_id not in by_id:
                raise NotFoundError("ScheduleEntry", schedule_id)
        return [by_id[schedule_id] for schedule_id in schedule_ids]

    async def _check_unconverted(self, entries: list[ScheduleEntry]) -> None:
        result = await self.session.execute(
            select(TimeRecord.source_schedule_id, TimeRecord.time_record_id).where(
                TimeRecord.source_schedule_id.in_([e.schedule_id for e in entries])
            )
        )
        linked = dict(result.all())

        for entry in entries:
            if entry.converted or entry.schedule_id in linked:
                raise AlreadyConvertedError(entry.schedule_id, linked.get(entry.schedule_id))
            if entry.status == ScheduleStatus.CANCELLED.value:
                raise ValidationError(f"Schedule entry {entry.schedule_id} is cancelled")
