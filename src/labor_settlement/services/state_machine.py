"""Pay run and pay run builder state machines."""

from __future__ import annotations

from enum import Enum

from labor_settlement.errors import LaborPipelineError


class PayRunStatus(str, Enum):
    """Pay run status values."""

    DRAFT = "draft"
    PAID = "paid"


class BuilderState(str, Enum):
    """Pay run builder session states."""

    COLLECTING = "collecting"
    SELECTING = "selecting"
    BUILT = "built"


class InvalidTransitionError(LaborPipelineError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayRunStateMachine:
    """State machine for pay run status transitions.

    Allowed transitions:
    - draft → paid (settlement, exactly once)

    Only draft runs may be deleted.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayRunStatus.DRAFT: [PayRunStatus.PAID],
        PayRunStatus.PAID: [],  # Terminal state
    }

    DELETABLE = {PayRunStatus.DRAFT}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_delete(cls, status: str) -> bool:
        """Check if a pay run in this status may be deleted."""
        return status in cls.DELETABLE

    @classmethod
    def is_settled(cls, status: str) -> bool:
        """Check if money has moved for a pay run in this status."""
        return status == PayRunStatus.PAID

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


class BuilderStateMachine:
    """Transitions of a pay run builder session.

    - collecting → selecting (date range set and candidates fetched)
    - selecting → selecting (re-fetch with other filters)
    - selecting → built (batch persisted)
    - built is terminal; start a new builder for another batch
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        BuilderState.COLLECTING: [BuilderState.SELECTING],
        BuilderState.SELECTING: [BuilderState.SELECTING, BuilderState.BUILT],
        BuilderState.BUILT: [],
    }

    @classmethod
    def can_transition(cls, from_state: str, to_state: str) -> bool:
        """Check if a transition is valid."""
        return to_state in cls.VALID_TRANSITIONS.get(from_state, [])

    @classmethod
    def validate_transition(cls, from_state: str, to_state: str, reason: str | None = None) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_state, to_state):
            raise InvalidTransitionError(from_state, to_state, reason)
