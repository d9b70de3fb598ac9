"""Leave request state machine with transition validation."""

from __future__ import annotations

from datetime import date
from enum import Enum


class LeaveStatus(str, Enum):
    """Leave request status values."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class InvalidTransitionError(Exception):
    """A leave request cannot move from its current status to the target."""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = str(getattr(from_status, "value", from_status))
        self.to_status = str(getattr(to_status, "value", to_status))
        super().__init__(f"Leave request cannot move from {self.from_status} to {self.to_status}")


class LeaveStateMachine:
    """State machine for leave request status transitions.

    Allowed transitions:
    - Pending → Approved (approver)
    - Pending → Rejected (approver)
    - Pending → Cancelled (owning employee)

    Approved, Rejected and Cancelled are terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        LeaveStatus.PENDING: [LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED],
        LeaveStatus.APPROVED: [],
        LeaveStatus.REJECTED: [],
        LeaveStatus.CANCELLED: [],
    }

    # Decisions an approver may record
    DECISIONS = {LeaveStatus.APPROVED, LeaveStatus.REJECTED}

    # Statuses that block overlapping submissions
    ACTIVE = {LeaveStatus.PENDING, LeaveStatus.APPROVED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Raise InvalidTransitionError unless the move is in the table."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_decision(cls, status: str) -> bool:
        return status in cls.DECISIONS


def leave_days(start: date, end: date) -> int:
    """Calendar days covered by [start, end], both ends included."""
    return (end - start).days + 1
