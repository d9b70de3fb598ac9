"""Typed errors raised by the workforce engines.

Every error carries a category which the HTTP boundary maps to a status code:

- validation: malformed or out-of-range input (400)
- conflict: violates a uniqueness or state invariant (400)
- not_found: unknown record, or a record the caller may not see (404)
- authentication: no usable identity on the request (401)
- authorization: role or capability insufficient (403)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories understood by the HTTP boundary."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"


class WorkforceError(Exception):
    """Base class for all engine errors."""

    category: ErrorCategory = ErrorCategory.VALIDATION
    code: str = "WORKFORCE_ERROR"
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(WorkforceError):
    """Input is malformed or out of range."""

    category = ErrorCategory.VALIDATION
    code = "VALIDATION_ERROR"


class ConflictError(WorkforceError):
    """Operation conflicts with the current state of a record."""

    category = ErrorCategory.CONFLICT
    code = "CONFLICT"


class NotFoundError(WorkforceError):
    """Record does not exist or is hidden from the caller."""

    category = ErrorCategory.NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Record not found"


class AuthenticationRequired(WorkforceError):
    """Request carries no identity, or one the resolver could not parse."""

    category = ErrorCategory.AUTHENTICATION
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class AuthorizationError(WorkforceError):
    """Caller lacks the role or capability for this operation."""

    category = ErrorCategory.AUTHORIZATION
    code = "UNAUTHORIZED"
    default_message = "Insufficient role for this operation"


class AccessDenied(AuthorizationError):
    code = "ACCESS_DENIED"
    default_message = "Access denied"


# ===== Employee profiles =====


class EmployeeProfileNotFound(NotFoundError):
    code = "EMPLOYEE_PROFILE_NOT_FOUND"
    default_message = "Employee profile not found"


class DuplicateEmployeeProfile(ConflictError):
    code = "DUPLICATE_EMPLOYEE_PROFILE"
    default_message = "User already has an employee profile"


class InvalidCompensation(ValidationError):
    code = "INVALID_COMPENSATION"
    default_message = "Compensation amounts must be non-negative"


# ===== Attendance =====


class AlreadyClockedIn(ConflictError):
    code = "ALREADY_CLOCKED_IN"
    default_message = "Already clocked in today"


class NoClockInFound(ConflictError):
    code = "NO_CLOCK_IN_FOUND"
    default_message = "No clock-in record found for today"


class MustClockInFirst(ConflictError):
    code = "MUST_CLOCK_IN_FIRST"
    default_message = "Must clock in before clocking out"


class AlreadyClockedOut(ConflictError):
    code = "ALREADY_CLOCKED_OUT"
    default_message = "Already clocked out today"


class InvalidDateRange(ValidationError):
    code = "INVALID_DATE_RANGE"
    default_message = "End date must not precede start date"


# ===== Leave =====


class InvalidRange(ValidationError):
    code = "INVALID_RANGE"
    default_message = "Leave end date must not precede start date"


class PastStartDate(ValidationError):
    code = "PAST_START_DATE"
    default_message = "Leave cannot start in the past"


class OverlappingRequest(ConflictError):
    code = "OVERLAPPING_REQUEST"
    default_message = "Leave request overlaps an existing pending or approved request"


class InvalidDecision(ValidationError):
    code = "INVALID_DECISION"
    default_message = "Decision must be Approved or Rejected"


class NotPending(ConflictError):
    code = "NOT_PENDING"
    default_message = "Leave request has already been decided"


class PastRequest(ConflictError):
    code = "PAST_REQUEST"
    default_message = "Leave request start date has already passed"


class RejectionReasonRequired(ValidationError):
    code = "REJECTION_REASON_REQUIRED"
    default_message = "A rejection reason is required"


class NotCancellable(ConflictError):
    code = "NOT_CANCELLABLE"
    default_message = "Only pending leave requests can be cancelled"


class AlreadyStarted(ConflictError):
    code = "ALREADY_STARTED"
    default_message = "Leave has already started"


class LeaveNotFound(NotFoundError):
    code = "LEAVE_NOT_FOUND"
    default_message = "Leave request not found"


# ===== Payroll =====


class EmptyBatch(ValidationError):
    code = "EMPTY_BATCH"
    default_message = "Employee list cannot be empty"


class InvalidMonth(ValidationError):
    code = "INVALID_MONTH"
    default_message = "Invalid month. Must be between 1 and 12"


class InvalidYear(ValidationError):
    code = "INVALID_YEAR"
    default_message = "Invalid payroll year"


class InvalidAmount(ValidationError):
    code = "INVALID_AMOUNT"
    default_message = "Payroll amounts must be non-negative"


class AlreadyPaid(ConflictError):
    code = "ALREADY_PAID"
    default_message = "Payroll record has been paid and can no longer change"


class PayrollNotFound(NotFoundError):
    code = "PAYROLL_NOT_FOUND"
    default_message = "Payroll record not found"


class PayrollCycleFailed(ConflictError):
    """No employee in a non-empty batch could be processed."""

    code = "PAYROLL_CYCLE_FAILED"
    default_message = "Payroll cycle failed for every employee"


# ===== Performance goals =====


class EmptyGoals(ValidationError):
    code = "EMPTY_GOALS"
    default_message = "Goals list cannot be empty"


class InvalidGoal(ValidationError):
    code = "INVALID_GOAL"
    default_message = "Goal is not valid"


class InvalidGoalStatus(ValidationError):
    code = "INVALID_GOAL_STATUS"
    default_message = "Goal status must be one of PENDING, IN_PROGRESS, COMPLETED"


class GoalNotFound(NotFoundError):
    code = "GOAL_NOT_FOUND"
    default_message = "Goal not found"
