"""Labor pipeline services."""

from labor_settlement.services.state_machine import (
    BuilderState,
    InvalidTransitionError,
    PayRunStateMachine,
    PayRunStatus,
)
from labor_settlement.services.directory import DirectoryService
from labor_settlement.services.time_record_service import TimeRecordService
from labor_settlement.services.schedule_service import ScheduleService
from labor_settlement.services.split_service import SplitService
from labor_settlement.services.conversion_service import ConversionService
from labor_settlement.services.pay_run_builder import PayRunBuilder, PayRunService
from labor_settlement.services.settlement_service import SettlementService

__all__ = [
    "BuilderState",
    "InvalidTransitionError",
    "PayRunStateMachine",
    "PayRunStatus",
    "DirectoryService",
    "TimeRecordService",
    "ScheduleService",
    "SplitService",
    "ConversionService",
    "PayRunBuilder",
    "PayRunService",
    "SettlementService",
]
