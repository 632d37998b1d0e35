"""Read-side grouping and totals for schedule entries and time records."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING

from labor_settlement.calculators.types import (
    GroupPaymentStatus,
    PaymentStatus,
    PayRunSummary,
    ProjectSplit,
    ScheduleDayGroup,
    UnpaidSummary,
    WorkerDayGroup,
    WorkerTotal,
)

if TYPE_CHECKING:
    from labor_settlement.models import PayRun, PayRunItem, ScheduleEntry, TimeRecord


def group_time_records(records: Iterable[TimeRecord]) -> list[WorkerDayGroup]:
    """Group time records by (worker, date), one project split per record.

    Groups come back in first-seen order, so callers control ordering through
    the query.
    """
    groups: dict[tuple, WorkerDayGroup] = {}

    for record in records:
        key = (record.worker_id, record.work_date)
        group = groups.get(key)
        if group is None:
            group = WorkerDayGroup(worker_id=record.worker_id, work_date=record.work_date)
            groups[key] = group

        group.projects.append(
            ProjectSplit(
                time_record_id=record.time_record_id,
                project_id=record.project_id,
                hours=record.hours_worked,
                cost=record.labor_cost,
                payment_status=record.payment_status,
                trade_id=record.trade_id,
                cost_code_id=record.cost_code_id,
                notes=record.notes,
                source_schedule_id=record.source_schedule_id,
            )
        )
        group.total_hours += record.hours_worked
        group.total_cost += record.labor_cost

    for group in groups.values():
        group.payment_status = _group_payment_status(group.projects)

    return list(groups.values())


def _group_payment_status(projects: list[ProjectSplit]) -> GroupPaymentStatus:
    paid = sum(1 for p in projects if p.payment_status == PaymentStatus.PAID)
    if paid == 0:
        return GroupPaymentStatus.UNPAID
    if paid == len(projects):
        return GroupPaymentStatus.PAID
    return GroupPaymentStatus.PARTIAL


def group_schedule_entries(entries: Iterable[ScheduleEntry]) -> list[ScheduleDayGroup]:
    """Group schedule entries by (worker, date)."""
    groups: dict[tuple, ScheduleDayGroup] = {}

    for entry in entries:
        key = (entry.worker_id, entry.scheduled_date)
        group = groups.get(key)
        if group is None:
            group = ScheduleDayGroup(worker_id=entry.worker_id, scheduled_date=entry.scheduled_date)
            groups[key] = group
        group.total_hours += entry.scheduled_hours
        group.schedule_ids.append(entry.schedule_id)
        if entry.project_id not in group.project_ids:
            group.project_ids.append(entry.project_id)

    return list(groups.values())


def summarize_unpaid(records: Iterable[TimeRecord]) -> UnpaidSummary:
    """Count, hours, amount and distinct workers over a set of records."""
    total_records = 0
    total_hours = Decimal("0")
    total_amount = Decimal("0")
    workers = set()

    for record in records:
        total_records += 1
        total_hours += record.hours_worked
        total_amount += record.labor_cost
        workers.add(record.worker_id)

    return UnpaidSummary(
        total_records=total_records,
        total_hours=total_hours,
        total_amount=total_amount,
        workers_count=len(workers),
    )


def summarize_pay_run(pay_run: PayRun, items: Iterable[PayRunItem]) -> PayRunSummary:
    """Summarize a pay run's items, with per-worker totals."""
    per_worker: dict = {}
    item_count = 0
    total_hours = Decimal("0")
    items_amount = Decimal("0")

    for item in items:
        item_count += 1
        total_hours += item.hours
        items_amount += item.amount
        count, hours, amount = per_worker.get(item.worker_id, (0, Decimal("0"), Decimal("0")))
        per_worker[item.worker_id] = (count + 1, hours + item.hours, amount + item.amount)

    workers = [
        WorkerTotal(worker_id=worker_id, item_count=count, hours=hours, amount=amount)
        for worker_id, (count, hours, amount) in per_worker.items()
    ]

    return PayRunSummary(
        pay_run_id=pay_run.pay_run_id,
        status=pay_run.status,
        item_count=item_count,
        total_hours=total_hours,
        total_amount=pay_run.total_amount,
        items_amount=items_amount,
        workers=workers,
    )
