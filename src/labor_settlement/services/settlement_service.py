"""Settlement service: mark pay runs paid, or discard drafts."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.calculators.types import PaymentStatus
from labor_settlement.database import atomic
from labor_settlement.errors import AlreadySettledError, NotFoundError
from labor_settlement.models import PayRun, PayRunItem, TimeRecord
from labor_settlement.models.base import utcnow
from labor_settlement.services.state_machine import PayRunStateMachine, PayRunStatus

logger = logging.getLogger(__name__)


class SettlementService:
    """Closes pay runs.

    This is the only place a time record becomes paid. Settlement is a
    conditional update on the pay run status, so when two callers race to
    settle the same batch exactly one of them wins and the other gets
    AlreadySettledError.
    """

    def __init__(self, session: AsyncSession, today: Callable[[], date] = date.today):
        self.session = session
        self.today = today

    async def _get(self, pay_run_id: UUID) -> PayRun:
        pay_run = await self.session.get(PayRun, pay_run_id)
        if pay_run is None:
            raise NotFoundError("PayRun", pay_run_id)
        return pay_run

    async def mark_paid(self, pay_run_id: UUID, payment_date: date | None = None) -> PayRun:
        """Settle a draft pay run and every time record it holds.

        Args:
            pay_run_id: Pay run to settle
            payment_date: Defaults to today

        Returns:
            The refreshed pay run

        Raises:
            NotFoundError: No such pay run
            AlreadySettledError: The pay run is not a draft
            PartialFailureError: The write failed; nothing was settled
        """
        pay_run = await self._get(pay_run_id)
        if not PayRunStateMachine.can_transition(pay_run.status, PayRunStatus.PAID):
            raise AlreadySettledError(pay_run_id, pay_run.status)

        payment_date = payment_date or self.today()

        async with atomic(self.session, "mark pay run paid"):
            result = await self.session.execute(
                update(PayRun)
                .where(
                    PayRun.pay_run_id == pay_run_id,
                    PayRun.status == PayRunStatus.DRAFT.value,
                )
                .values(
                    status=PayRunStatus.PAID.value,
                    payment_date=payment_date,
                    paid_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.session.refresh(pay_run)
                raise AlreadySettledError(pay_run_id, pay_run.status)

            records = await self.session.execute(
                update(TimeRecord)
                .where(
                    TimeRecord.time_record_id.in_(
                        select(PayRunItem.time_record_id).where(PayRunItem.pay_run_id == pay_run_id)
                    ),
                    TimeRecord.payment_status == PaymentStatus.UNPAID.value,
                )
                .values(
                    payment_status=PaymentStatus.PAID.value,
                    payment_date=payment_date,
                )
                .execution_options(synchronize_session=False)
            )

        await self.session.refresh(pay_run)
        await self._expire_settled_records(pay_run_id)

        logger.info(
            "Pay run %s marked paid on %s: %d time record(s), total %s",
            pay_run_id,
            payment_date,
            records.rowcount,
            pay_run.total_amount,
        )
        return pay_run

    async def delete(self, pay_run_id: UUID) -> None:
        """Delete a draft pay run, releasing its time records.

        Raises:
            NotFoundError: No such pay run
            AlreadySettledError: The pay run is not a draft
        """
        pay_run = await self._get(pay_run_id)
        if not PayRunStateMachine.can_delete(pay_run.status):
            raise AlreadySettledError(pay_run_id, pay_run.status)

        async with atomic(self.session, "delete pay run"):
            await self.session.execute(delete(PayRunItem).where(PayRunItem.pay_run_id == pay_run_id))
            result = await self.session.execute(
                delete(PayRun)
                .where(
                    PayRun.pay_run_id == pay_run_id,
                    PayRun.status == PayRunStatus.DRAFT.value,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # Settled meanwhile: put its items back.
                await self.session.rollback()
                await self.session.refresh(pay_run)
                raise AlreadySettledError(pay_run_id, pay_run.status)
            self.session.expunge(pay_run)

        logger.info("Deleted draft pay run %s", pay_run_id)

    async def _expire_settled_records(self, pay_run_id: UUID) -> None:
        # Bulk updates bypass the identity map; reload records held by this session.
        result = await self.session.execute(
            select(TimeRecord)
            .join(PayRunItem, PayRunItem.time_record_id == TimeRecord.time_record_id)
            .where(PayRunItem.pay_run_id == pay_run_id)
            .execution_options(populate_existing=True)
        )
        result.scalars().all()
