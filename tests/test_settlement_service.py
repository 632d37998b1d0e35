"""Tests for settling and discarding pay runs."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from helpers import TODAY, YESTERDAY, build_pay_run, log_hours
from labor_settlement.errors import AlreadySettledError, NotFoundError
from labor_settlement.models import PayRun, PayRunItem, TimeRecord
from labor_settlement.services.settlement_service import SettlementService
from labor_settlement.services.time_record_service import TimeRecordService

pytestmark = pytest.mark.asyncio


class TestMarkPaid:
    """Test settlement."""

    async def test_mark_paid_settles_batch_and_records(self, session, seed, today):
        """Every record in the pay run becomes paid with the payment date."""
        alice = await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        bob = await log_hours(session, seed.bob_id, seed.project_b_id, YESTERDAY, "2")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)

        settled = await SettlementService(session, today=today).mark_paid(
            pay_run.pay_run_id, payment_date=date(2024, 6, 20)
        )
        await session.commit()

        assert settled.status == "paid"
        assert settled.payment_date == date(2024, 6, 20)
        assert settled.paid_at is not None
        for record in (alice, bob):
            assert record.payment_status == "paid"
            assert record.payment_date == date(2024, 6, 20)

    async def test_payment_date_defaults_to_today(self, session, seed, today):
        """Without a date the clock decides."""
        await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)

        settled = await SettlementService(session, today=today).mark_paid(pay_run.pay_run_id)

        assert settled.payment_date == TODAY

    async def test_only_referenced_records_paid(self, session, seed, today):
        """Records outside the pay run stay unpaid."""
        inside = await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        outside = await log_hours(session, seed.alice_id, seed.project_b_id, YESTERDAY, "1")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY, [inside.time_record_id])

        await SettlementService(session, today=today).mark_paid(pay_run.pay_run_id)
        await session.commit()

        await session.refresh(outside)
        assert inside.payment_status == "paid"
        assert outside.payment_status == "unpaid"
        assert outside.payment_date is None

    async def test_settling_twice_rejected(self, session, seed, today):
        """A second settlement on a later day changes nothing."""
        record = await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)
        first = await SettlementService(session, today=today).mark_paid(pay_run.pay_run_id)
        await session.commit()
        paid_at = first.paid_at

        later = SettlementService(session, today=lambda: date(2030, 1, 1))
        with pytest.raises(AlreadySettledError) as exc_info:
            await later.mark_paid(pay_run.pay_run_id)
        with pytest.raises(AlreadySettledError):
            await later.mark_paid(pay_run.pay_run_id, payment_date=date(2030, 1, 2))
        await session.commit()

        assert exc_info.value.status == "paid"
        assert exc_info.value.code == "ALREADY_SETTLED"

        session.expunge_all()
        stored_run = await session.get(PayRun, pay_run.pay_run_id)
        stored_record = await session.get(TimeRecord, record.time_record_id)
        assert stored_run.status == "paid"
        assert stored_run.payment_date == TODAY
        assert stored_run.paid_at == paid_at
        assert stored_record.payment_status == "paid"
        assert stored_record.payment_date == TODAY

    async def test_concurrent_settlement_has_one_winner(
        self, session, session_factory, seed, today
    ):
        """A caller holding a stale draft loses to the one that settled first."""
        await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)

        async with session_factory() as other_session:
            await SettlementService(other_session, today=today).mark_paid(
                pay_run.pay_run_id, payment_date=YESTERDAY
            )
            await other_session.commit()

        # This session still sees the draft it built.
        assert pay_run.status == "draft"
        with pytest.raises(AlreadySettledError):
            await SettlementService(session, today=today).mark_paid(pay_run.pay_run_id)

        await session.rollback()
        record = (await session.execute(select(TimeRecord))).scalar_one()
        assert record.payment_date == YESTERDAY

    async def test_missing_pay_run(self, session, seed, today):
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await SettlementService(session, today=today).mark_paid(uuid4())

    async def test_paid_records_leave_unpaid_view(self, session, seed, today):
        """Settled labor no longer appears as owed."""
        await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)
        await SettlementService(session, today=today).mark_paid(pay_run.pay_run_id)
        await session.commit()

        summary = await TimeRecordService(session).unpaid_summary(include_claimed=True)

        assert summary.total_records == 0
        assert summary.total_amount == Decimal("0")


class TestDelete:
    """Test discarding draft pay runs."""

    async def test_delete_draft_releases_records(self, session, seed, today):
        """Items go with the draft and the records become candidates again."""
        record = await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)

        await SettlementService(session, today=today).delete(pay_run.pay_run_id)
        await session.commit()

        assert await session.scalar(select(func.count()).select_from(PayRun)) == 0
        assert await session.scalar(select(func.count()).select_from(PayRunItem)) == 0
        unpaid = await TimeRecordService(session).list_unpaid()
        assert [r.time_record_id for r in unpaid] == [record.time_record_id]

    async def test_released_records_can_be_rebuilt(self, session, seed, today):
        """A discarded draft does not block a new pay run."""
        await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        first = await build_pay_run(session, YESTERDAY, YESTERDAY)
        await SettlementService(session, today=today).delete(first.pay_run_id)
        await session.commit()

        second = await build_pay_run(session, YESTERDAY, YESTERDAY)

        assert second.total_amount == Decimal("160")

    async def test_delete_paid_rejected(self, session, seed, today):
        """Paid pay runs are permanent."""
        await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)
        service = SettlementService(session, today=today)
        await service.mark_paid(pay_run.pay_run_id)
        await session.commit()

        with pytest.raises(AlreadySettledError):
            await service.delete(pay_run.pay_run_id)

    async def test_delete_after_concurrent_settlement_keeps_items(
        self, session, session_factory, seed, today
    ):
        """Deleting a stale draft that was settled elsewhere leaves its items."""
        await log_hours(session, seed.alice_id, seed.project_a_id, YESTERDAY, "8")
        pay_run = await build_pay_run(session, YESTERDAY, YESTERDAY)

        async with session_factory() as other_session:
            await SettlementService(other_session, today=today).mark_paid(pay_run.pay_run_id)
            await other_session.commit()

        with pytest.raises(AlreadySettledError) as exc_info:
            await SettlementService(session, today=today).delete(pay_run.pay_run_id)

        assert exc_info.value.status == "paid"
        assert await session.scalar(select(func.count()).select_from(PayRun)) == 1
        assert await session.scalar(select(func.count()).select_from(PayRunItem)) == 1

    async def test_delete_missing(self, session, seed, today):
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await SettlementService(session, today=today).delete(uuid4())
