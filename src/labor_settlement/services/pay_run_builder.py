"""Pay run builder: select unpaid time records into a draft payroll batch."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.calculators.cost import CostCalculator
from labor_settlement.calculators.grouping import summarize_pay_run
from labor_settlement.calculators.types import PaymentStatus, PayRunSummary
from labor_settlement.database import atomic
from labor_settlement.errors import (
    AlreadyClaimedError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from labor_settlement.models import PayRun, PayRunItem, TimeRecord
from labor_settlement.services.state_machine import (
    BuilderState,
    BuilderStateMachine,
    PayRunStatus,
)
from labor_settlement.services.directory import DirectoryService
from labor_settlement.services.time_record_service import TimeRecordService

logger = logging.getLogger(__name__)


class PayRunBuilder:
    """One pay run building session.

    Flow:
    1. set_range() picks the date range and optional companies
    2. fetch_candidates() loads unpaid, unclaimed records (Selecting)
    3. select() / deselect() / select_all() adjust the selection
    4. build() persists a draft pay run with one item per selected record

    A builder builds at most one pay run.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = DirectoryService(session)
        self.time_records = TimeRecordService(session)
        self.state = BuilderState.COLLECTING
        self.start: date | None = None
        self.end: date | None = None
        self.payer_company_id: UUID | None = None
        self.payee_company_id: UUID | None = None
        self.candidates: dict[UUID, TimeRecord] = {}
        self._selected: set[UUID] = set()
        self.pay_run: PayRun | None = None

    def set_range(
        self,
        start: date | None,
        end: date | None,
        payer_company_id: UUID | None = None,
        payee_company_id: UUID | None = None,
    ) -> None:
        """Set the pay period and the paying/receiving companies."""
        if self.state == BuilderState.BUILT:
            BuilderStateMachine.validate_transition(
                self.state, BuilderState.SELECTING, "pay run already built"
            )
        if start is None or end is None:
            raise ValidationError("Both start and end dates are required")
        if end < start:
            raise ValidationError("end date must not precede start date")

        self.start = start
        self.end = end
        self.payer_company_id = payer_company_id
        self.payee_company_id = payee_company_id

    async def fetch_candidates(
        self,
        worker_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> list[TimeRecord]:
        """Load the unpaid, unclaimed records in range.

        The current selection is kept for records that are still candidates.
        """
        if self.start is None or self.end is None:
            raise ValidationError("Set the date range before fetching candidates")
        BuilderStateMachine.validate_transition(self.state, BuilderState.SELECTING)

        records = await self.time_records.list_unpaid(
            start=self.start,
            end=self.end,
            company_id=self.payer_company_id,
            worker_id=worker_id,
            project_id=project_id,
        )
        self.candidates = {r.time_record_id: r for r in records}
        self._selected.intersection_update(self.candidates)
        self.state = BuilderState.SELECTING

        logger.debug(
            "Fetched %d candidate time record(s) for %s to %s",
            len(records),
            self.start,
            self.end,
        )
        return records

    async def select(self, time_record_ids: Iterable[UUID]) -> None:
        """Add records to the selection.

        Records that are paid or already held by a pay run raise
        AlreadyClaimedError; any other non-candidate is a ValidationError.
        """
        self._require_selecting()
        ids = set(time_record_ids)
        unknown = ids.difference(self.candidates)
        if unknown:
            taken = await self._claimed_or_paid(unknown)
            if taken:
                raise AlreadyClaimedError(sorted(taken, key=str))
        self._selected.update(self._require_candidates(ids))

    def deselect(self, time_record_ids: Iterable[UUID]) -> None:
        """Remove records from the selection."""
        ids = self._require_candidates(time_record_ids)
        self._selected.difference_update(ids)

    def select_all(self) -> None:
        """Select every candidate."""
        self._require_selecting()
        self._selected = set(self.candidates)

    @property
    def selected(self) -> list[TimeRecord]:
        """Selected records in candidate order."""
        return [r for rid, r in self.candidates.items() if rid in self._selected]

    @property
    def selected_total(self) -> Decimal:
        return sum((r.labor_cost for r in self.selected), Decimal("0"))

    @property
    def selected_hours(self) -> Decimal:
        return sum((r.hours_worked for r in self.selected), Decimal("0"))

    async def build(self, created_by: UUID | None = None) -> PayRun:
        """Persist the selection as a draft pay run.

        Raises:
            InvalidTransitionError: Candidates not fetched, or already built
            NotFoundError: Payer or payee company does not exist
            ValidationError: Nothing selected
            AlreadyClaimedError: A selected record was paid or claimed meanwhile
            PartialFailureError: The write failed; nothing was created
        """
        BuilderStateMachine.validate_transition(
            self.state,
            BuilderState.BUILT,
            "pay run already built" if self.state == BuilderState.BUILT else "fetch candidates first",
        )
        if not self._selected:
            raise ValidationError("Select at least one time record")
        for company_id in (self.payer_company_id, self.payee_company_id):
            if company_id is not None:
                await self.directory.get_company(company_id)

        records = await self._recheck_selection()
        pay_run_id = uuid4()
        total = sum((r.labor_cost for r in records), Decimal("0"))

        pay_run = PayRun(
            pay_run_id=pay_run_id,
            date_range_start=self.start,
            date_range_end=self.end,
            payer_company_id=self.payer_company_id,
            payee_company_id=self.payee_company_id,
            status=PayRunStatus.DRAFT.value,
            total_amount=total,
            created_by=created_by,
        )
        items = [
            PayRunItem(
                pay_run_id=pay_run_id,
                time_record_id=record.time_record_id,
                worker_id=record.worker_id,
                hours=record.hours_worked,
                rate=CostCalculator.effective_rate(record.labor_cost, record.hours_worked),
                amount=record.labor_cost,
            )
            for record in records
        ]
        # Rollback expires every loaded record; keep plain ids for the error.
        record_ids = [record.time_record_id for record in records]

        try:
            async with atomic(self.session, "build pay run"):
                self.session.add(pay_run)
                self.session.add_all(items)
        except PartialFailureError as exc:
            # Lost a race with another builder on the unique claim.
            if isinstance(exc.cause, IntegrityError):
                raise AlreadyClaimedError(record_ids) from exc
            raise

        self.state = BuilderState.BUILT
        self.pay_run = pay_run

        logger.info(
            "Built draft pay run %s: %d item(s), total %s",
            pay_run_id,
            len(items),
            total,
        )
        return pay_run

    async def _recheck_selection(self) -> list[TimeRecord]:
        ids = [r.time_record_id for r in self.selected]

        result = await self.session.execute(
            select(TimeRecord)
            .where(TimeRecord.time_record_id.in_(ids))
            .execution_options(populate_existing=True)
        )
        by_id = {r.time_record_id: r for r in result.scalars().all()}
        for record_id in ids:
            if record_id not in by_id:
                raise NotFoundError("TimeRecord", record_id)

        taken = await self._claimed_or_paid(ids)
        if taken:
            raise AlreadyClaimedError([rid for rid in ids if rid in taken])

        return [by_id[record_id] for record_id in ids]

    async def _claimed_or_paid(self, ids: Iterable[UUID]) -> set[UUID]:
        ids = list(ids)
        claimed = await self.session.execute(
            select(PayRunItem.time_record_id).where(PayRunItem.time_record_id.in_(ids))
        )
        paid = await self.session.execute(
            select(TimeRecord.time_record_id).where(
                TimeRecord.time_record_id.in_(ids),
                TimeRecord.payment_status == PaymentStatus.PAID.value,
            )
        )
        return set(claimed.scalars().all()) | set(paid.scalars().all())

    def _require_selecting(self) -> None:
        if self.state != BuilderState.SELECTING:
            raise ValidationError(f"Builder is {self.state.value}; fetch candidates first")

    def _require_candidates(self, time_record_ids: Iterable[UUID]) -> set[UUID]:
        self._require_selecting()
        ids = set(time_record_ids)
        unknown = ids.difference(self.candidates)
        if unknown:
            listed = ", ".join(sorted(str(i) for i in unknown))
            raise ValidationError(f"Not candidates for this pay run: {listed}")
        return ids


class PayRunService:
    """Read side of pay runs."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, pay_run_id: UUID) -> PayRun:
        """Load a pay run or raise NotFoundError."""
        pay_run = await self.session.get(PayRun, pay_run_id)
        if pay_run is None:
            raise NotFoundError("PayRun", pay_run_id)
        return pay_run

    async def list(self, status: str | None = None) -> list[PayRun]:
        """List pay runs, newest first."""
        query = select(PayRun)
        if status is not None:
            try:
                status = PayRunStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown pay run status {status!r}") from None
            query = query.where(PayRun.status == status)
        query = query.order_by(PayRun.created_at.desc())

        result = await self.session.execute(query)
        return [*result.scalars().all()]

    async def items(self, pay_run_id: UUID) -> list[PayRunItem]:
        """Items of a pay run in creation order."""
        await self.get(pay_run_id)
        result = await self.session.execute(
            select(PayRunItem)
            .where(PayRunItem.pay_run_id == pay_run_id)
            .order_by(PayRunItem.created_at, PayRunItem.worker_id)
        )
        return [*result.scalars().all()]

    async def summary(self, pay_run_id: UUID) -> PayRunSummary:
        """Counts and totals of a pay run, per worker."""
        pay_run = await self.get(pay_run_id)
        return summarize_pay_run(pay_run, await self.items(pay_run_id))
