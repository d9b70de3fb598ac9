"""Workforce engine services."""

from workforce_engine.services.access_policy import AccessPolicy, Identity, Role
from workforce_engine.services.attendance_service import AttendanceService
from workforce_engine.services.employee_service import EmployeeService
from workforce_engine.services.leave_service import LeaveService
from workforce_engine.services.leave_state_machine import (
    InvalidTransitionError,
    LeaveStateMachine,
    LeaveStatus,
)
from workforce_engine.services.payroll_service import PayrollCycleResult, PayrollService
from workforce_engine.services.performance_service import PerformanceService

__all__ = [
    "AccessPolicy",
    "Identity",
    "Role",
    "AttendanceService",
    "EmployeeService",
    "LeaveService",
    "LeaveStateMachine",
    "LeaveStatus",
    "InvalidTransitionError",
    "PayrollCycleResult",
    "PayrollService",
    "PerformanceService",
]
