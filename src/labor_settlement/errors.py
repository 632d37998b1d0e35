"""Domain errors raised by the scheduling-to-settlement pipeline.

Every error carries a stable ``code`` so the API and CLI can report it
without inspecting the message.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID


class LaborPipelineError(Exception):
    """Base class for all pipeline errors."""

    code = "PIPELINE_ERROR"


class ValidationError(LaborPipelineError):
    """Missing field, non-positive hours, inverted date range and similar."""

    code = "VALIDATION_ERROR"


class NotFoundError(LaborPipelineError):
    """Raised when a referenced record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class LockedError(LaborPipelineError):
    """Raised when a record can no longer be edited.

    ``time_record_id`` points at the record the caller should edit instead,
    when there is one.
    """

    code = "LOCKED"

    def __init__(self, message: str, time_record_id: UUID | None = None):
        self.time_record_id = time_record_id
        super().__init__(message)


class AllocationMismatchError(LaborPipelineError):
    """Split targets do not add up to the hours being redistributed."""

    code = "ALLOCATION_MISMATCH"

    def __init__(self, expected: Decimal, actual: Decimal):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Allocations total {actual}h but the source schedule totals {expected}h"
        )


class AlreadySettledError(LaborPipelineError):
    """Settlement or deletion attempted on a pay run that is not a draft."""

    code = "ALREADY_SETTLED"

    def __init__(self, pay_run_id: UUID, status: str):
        self.pay_run_id = pay_run_id
        self.status = status
        super().__init__(f"Pay run {pay_run_id} is '{status}', expected 'draft'")


class AlreadyClaimedError(LaborPipelineError):
    """Time records are already paid or attached to another pay run."""

    code = "ALREADY_CLAIMED"

    def __init__(self, time_record_ids: list[UUID]):
        self.time_record_ids = time_record_ids
        ids = ", ".join(str(i) for i in time_record_ids)
        super().__init__(f"Time records already claimed by a pay run: {ids}")


class AlreadyConvertedError(ValidationError):
    """Schedule entry already has a time record."""

    code = "ALREADY_CONVERTED"

    def __init__(self, schedule_id: UUID, time_record_id: UUID | None = None):
        self.schedule_id = schedule_id
        self.time_record_id = time_record_id
        super().__init__(f"Schedule entry {schedule_id} is already converted")


class PartialFailureError(LaborPipelineError):
    """A multi-step write failed part way and was rolled back.

    The caller must surface this and let the user retry; no partial state
    was committed.
    """

    code = "PARTIAL_FAILURE"

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed and was rolled back: {cause}")
