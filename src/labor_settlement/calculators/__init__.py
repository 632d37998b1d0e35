"""Pure calculations: cost math, rate lookup, grouping and totals."""

from labor_settlement.calculators.cost import CostCalculator
from labor_settlement.calculators.grouping import (
    group_schedule_entries,
    group_time_records,
    summarize_pay_run,
    summarize_unpaid,
)
from labor_settlement.calculators.rate_resolver import RateResolver
from labor_settlement.calculators.types import Allocation

__all__ = [
    "Allocation",
    "CostCalculator",
    "RateResolver",
    "group_schedule_entries",
    "group_time_records",
    "summarize_pay_run",
    "summarize_unpaid",
]
