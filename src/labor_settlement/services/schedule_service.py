"""Schedule store: planned, not yet worked, labor assignments."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.calculators.cost import CostCalculator
from labor_settlement.calculators.grouping import group_schedule_entries
from labor_settlement.calculators.types import ScheduleDayGroup, ScheduleStatus
from labor_settlement.database import atomic
from labor_settlement.errors import LockedError, NotFoundError, ValidationError
from labor_settlement.models import Project, ScheduleEntry, TimeRecord
from labor_settlement.services.directory import DirectoryService
from labor_settlement.services.time_record_service import release_claim

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service owning schedule entries.

    Edit lock: an entry with a linked time record is frozen once its date is
    today or in the past. Future-dated entries stay editable even when a
    record was logged early.
    """

    EDITABLE_FIELDS = frozenset(
        {
            "worker_id",
            "project_id",
            "trade_id",
            "cost_code_id",
            "scheduled_date",
            "scheduled_hours",
            "notes",
            "status",
        }
    )

    def __init__(self, session: AsyncSession, today: Callable[[], date] = date.today):
        self.session = session
        self.today = today
        self.directory = DirectoryService(session)

    async def create(
        self,
        worker_id: UUID | None,
        project_id: UUID | None,
        scheduled_date: date | None,
        scheduled_hours: Decimal | int | float | str | None,
        trade_id: UUID | None = None,
        cost_code_id: UUID | None = None,
        notes: str | None = None,
        status: str = ScheduleStatus.PLANNED.value,
        created_by: UUID | None = None,
    ) -> ScheduleEntry:
        """Create a schedule entry."""
        if worker_id is None:
            raise ValidationError("worker_id is required")
        if project_id is None:
            raise ValidationError("project_id is required")
        if scheduled_date is None:
            raise ValidationError("scheduled_date is required")
        hours = CostCalculator.require_positive_hours(scheduled_hours, "scheduled_hours")
        status = self._validate_status(status)

        await self.directory.require_references(
            worker_id=worker_id,
            project_id=project_id,
            trade_id=trade_id,
            cost_code_id=cost_code_id,
        )

        entry = ScheduleEntry(
            worker_id=worker_id,
            project_id=project_id,
            trade_id=trade_id,
            cost_code_id=cost_code_id,
            scheduled_date=scheduled_date,
            scheduled_hours=hours,
            notes=notes,
            status=status,
            converted=False,
            created_by=created_by,
        )
        async with atomic(self.session, "create schedule entry"):
            self.session.add(entry)

        logger.info(
            "Scheduled worker %s on project %s for %s (%sh)",
            worker_id,
            project_id,
            scheduled_date,
            hours,
        )
        return entry

    async def get(self, schedule_id: UUID) -> ScheduleEntry:
        """Load a schedule entry or raise NotFoundError."""
        entry = await self.session.get(ScheduleEntry, schedule_id)
        if entry is None:
            raise NotFoundError("ScheduleEntry", schedule_id)
        return entry

    async def linked_time_record(self, schedule_id: UUID) -> TimeRecord | None:
        """Get the time record that references a schedule entry, if any."""
        result = await self.session.execute(
            select(TimeRecord).where(TimeRecord.source_schedule_id == schedule_id)
        )
        return result.scalar_one_or_none()

    async def ensure_editable(self, entry: ScheduleEntry) -> TimeRecord | None:
        """Raise LockedError if the entry is frozen by its time record.

        Returns the linked record (or None) so callers can reuse it.
        """
        linked = await self.linked_time_record(entry.schedule_id)
        if linked is not None and entry.scheduled_date <= self.today():
            raise LockedError(
                f"Schedule entry {entry.schedule_id} for {entry.scheduled_date} has a "
                f"time record; edit time record {linked.time_record_id} instead",
                time_record_id=linked.time_record_id,
            )
        return linked

    async def update(self, schedule_id: UUID, **patch: Any) -> ScheduleEntry:
        """Apply a partial update to a schedule entry."""
        unknown = set(patch) - self.EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        entry = await self.get(schedule_id)
        await self.ensure_editable(entry)

        if "scheduled_hours" in patch:
            patch["scheduled_hours"] = CostCalculator.require_positive_hours(
                patch["scheduled_hours"], "scheduled_hours"
            )
        for required in ("worker_id", "project_id", "scheduled_date"):
            if required in patch and patch[required] is None:
                raise ValidationError(f"{required} cannot be cleared")
        if "status" in patch:
            patch["status"] = self._validate_status(patch["status"])

        await self.directory.require_references(
            worker_id=patch.get("worker_id"),
            project_id=patch.get("project_id"),
            trade_id=patch.get("trade_id"),
            cost_code_id=patch.get("cost_code_id"),
        )

        async with atomic(self.session, "update schedule entry"):
            for field, value in patch.items():
                setattr(entry, field, value)

        logger.info("Updated schedule entry %s: %s", schedule_id, sorted(patch))
        return entry

    async def delete(self, schedule_id: UUID, keep_time_record: bool = False) -> None:
        """Delete a schedule entry together with its link.

        A linked time record is deleted in the same unit of work (along with
        its pay run item), or kept with its link severed when
        ``keep_time_record`` is set. A paid record is never deleted.
        """
        entry = await self.get(schedule_id)
        linked = await self.linked_time_record(schedule_id)

        if linked is not None and not keep_time_record and linked.is_paid:
            raise LockedError(
                f"Time record {linked.time_record_id} is paid; delete the schedule "
                "entry with keep_time_record to preserve it",
                time_record_id=linked.time_record_id,
            )

        async with atomic(self.session, "delete schedule entry"):
            if linked is not None:
                if keep_time_record:
                    await self.session.execute(
                        update(TimeRecord)
                        .where(TimeRecord.time_record_id == linked.time_record_id)
                        .values(source_schedule_id=None)
                    )
                else:
                    await release_claim(self.session, linked.time_record_id)
                    await self.session.delete(linked)
            await self.session.delete(entry)

        logger.info(
            "Deleted schedule entry %s (linked record %s, kept=%s)",
            schedule_id,
            linked.time_record_id if linked is not None else None,
            keep_time_record,
        )

    async def list_for_day(
        self,
        day: date,
        project_id: UUID | None = None,
        worker_id: UUID | None = None,
        company_id: UUID | None = None,
    ) -> list[ScheduleEntry]:
        """List entries for a single day."""
        return await self.list_range(day, day, project_id, worker_id, company_id)

    async def list_range(
        self,
        start: date,
        end: date,
        project_id: UUID | None = None,
        worker_id: UUID | None = None,
        company_id: UUID | None = None,
    ) -> list[ScheduleEntry]:
        """List entries between two dates inclusive, for week and month views."""
        if end < start:
            raise ValidationError("end date must not precede start date")

        query = select(ScheduleEntry).where(
            ScheduleEntry.scheduled_date >= start,
            ScheduleEntry.scheduled_date <= end,
        )
        if project_id is not None:
            query = query.where(ScheduleEntry.project_id == project_id)
        if worker_id is not None:
            query = query.where(ScheduleEntry.worker_id == worker_id)
        if company_id is not None:
            query = query.join(Project, Project.project_id == ScheduleEntry.project_id).where(
                Project.company_id == company_id
            )
        query = query.order_by(
            ScheduleEntry.scheduled_date,
            ScheduleEntry.worker_id,
            ScheduleEntry.created_at,
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_worker_day(self, worker_id: UUID, day: date) -> list[ScheduleEntry]:
        """All entries of one worker on one day."""
        return await self.list_range(day, day, worker_id=worker_id)

    @staticmethod
    def group_by_worker(entries: list[ScheduleEntry]) -> list[ScheduleDayGroup]:
        """Group entries by worker and day for display."""
        return group_schedule_entries(entries)

    @staticmethod
    def _validate_status(status: str | None) -> str:
        try:
            return ScheduleStatus(status).value
        except ValueError:
            allowed = ", ".join(s.value for s in ScheduleStatus)
            raise ValidationError(f"status must be one of {allowed}, got {status!r}") from None
