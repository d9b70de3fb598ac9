"""ORM models for the workforce engine."""

from workforce_engine.models.base import Base, TimestampMixin
from workforce_engine.models.employee import Employee
from workforce_engine.models.attendance import AttendanceRecord, AttendanceState
from workforce_engine.models.leave import LeaveRequest, LeaveType
from workforce_engine.models.payroll import PayrollRecord
from workforce_engine.models.performance import GoalStatus, PerformanceGoal

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "AttendanceRecord",
    "AttendanceState",
    "LeaveRequest",
    "LeaveType",
    "PayrollRecord",
    "GoalStatus",
    "PerformanceGoal",
]
