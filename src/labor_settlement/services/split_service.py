"""Split/rebalance engine: redistribute a worker's day across projects."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.calculators.cost import CostCalculator
from labor_settlement.calculators.types import Allocation
from labor_settlement.database import atomic
from labor_settlement.errors import AllocationMismatchError, LockedError, NotFoundError, ValidationError
from labor_settlement.models import ScheduleEntry
from labor_settlement.services.schedule_service import ScheduleService

logger = logging.getLogger(__name__)


class SplitService:
    """Replaces a worker's schedule entries for a day with a new allocation.

    Invariants:
    1. Hours are conserved: the allocations must sum exactly to the hours
       being replaced, otherwise nothing is written.
    2. Deleting the source entries and inserting the new ones is one unit of
       work.
    3. Entries linked to a time record are never split; the record would be
       left pointing at a deleted entry.
    """

    def __init__(self, session: AsyncSession, today: Callable[[], date] = date.today):
        self.session = session
        self.schedules = ScheduleService(session, today=today)

    async def split(
        self,
        allocations: Sequence[Allocation],
        schedule_id: UUID | None = None,
        worker_id: UUID | None = None,
        day: date | None = None,
        created_by: UUID | None = None,
    ) -> list[ScheduleEntry]:
        """Split one entry, or every entry of a worker's day, into allocations.

        Args:
            allocations: Target (project, hours) lines
            schedule_id: Split this single entry
            worker_id: With ``day``, rebalance all of the worker's entries that day
            day: See ``worker_id``
            created_by: Author recorded on the new entries

        Returns:
            The newly created entries, in allocation order

        Raises:
            ValidationError: Bad source selector, empty or non-positive allocation
            NotFoundError: Source entry, project, trade or cost code missing
            LockedError: A source entry has a linked time record
            AllocationMismatchError: Allocation hours differ from the source total
        """
        sources = await self._load_sources(schedule_id, worker_id, day)
        lines = self._normalize(allocations)

        original_total = sum((e.scheduled_hours for e in sources), Decimal("0"))
        allocated_total = sum((line.hours for line in lines), Decimal("0"))
        if allocated_total != original_total:
            raise AllocationMismatchError(expected=original_total, actual=allocated_total)

        for entry in sources:
            linked = await self.schedules.ensure_editable(entry)
            if linked is not None:
                raise LockedError(
                    f"Schedule entry {entry.schedule_id} has time record "
                    f"{linked.time_record_id}; it cannot be split",
                    time_record_id=linked.time_record_id,
                )

        for line in lines:
            await self.schedules.directory.require_references(
                project_id=line.project_id,
                trade_id=line.trade_id,
                cost_code_id=line.cost_code_id,
            )

        template = sources[0]
        new_entries = [
            ScheduleEntry(
                worker_id=template.worker_id,
                project_id=line.project_id,
                trade_id=line.trade_id if line.trade_id is not None else template.trade_id,
                cost_code_id=(
                    line.cost_code_id if line.cost_code_id is not None else template.cost_code_id
                ),
                scheduled_date=template.scheduled_date,
                scheduled_hours=line.hours,
                notes=line.notes,
                status=template.status,
                converted=False,
                created_by=created_by if created_by is not None else template.created_by,
            )
            for line in lines
        ]

        async with atomic(self.session, "split schedule"):
            for entry in sources:
                await self.session.delete(entry)
            self.session.add_all(new_entries)

        logger.info(
            "Split %d entr%s of worker %s on %s (%sh) into %d allocation(s)",
            len(sources),
            "y" if len(sources) == 1 else "ies",
            template.worker_id,
            template.scheduled_date,
            original_total,
            len(new_entries),
        )
        return new_entries

    async def _load_sources(
        self,
        schedule_id: UUID | None,
        worker_id: UUID | None,
        day: date | None,
    ) -> list[ScheduleEntry]:
        if schedule_id is not None:
            if worker_id is not None or day is not None:
                raise ValidationError("Give either schedule_id or worker_id and day, not both")
            return [await self.schedules.get(schedule_id)]

        if worker_id is None or day is None:
            raise ValidationError("schedule_id, or worker_id with day, is required")

        sources = await self.schedules.list_for_worker_day(worker_id, day)
        if not sources:
            raise NotFoundError(f"ScheduleEntry on {day} for worker", worker_id)
        return sources

    @staticmethod
    def _normalize(allocations: Sequence[Allocation]) -> list[Allocation]:
        if not allocations:
            raise ValidationError("At least one allocation is required")

        lines = []
        for index, allocation in enumerate(allocations):
            if allocation.project_id is None:
                raise ValidationError(f"Allocation {index + 1} has no project")
            hours = CostCalculator.require_positive_hours(
                allocation.hours, f"allocation {index + 1} hours"
            )
            lines.append(
                Allocation(
                    project_id=allocation.project_id,
                    hours=hours,
                    trade_id=allocation.trade_id,
                    cost_code_id=allocation.cost_code_id,
                    notes=allocation.notes,
                )
            )
        return lines
