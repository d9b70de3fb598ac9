"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from workforce_engine.models import AttendanceState, LeaveType

# Money leaves the API as a JSON number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Employee schemas
# ============================================================================


class EmployeeCreate(CamelModel):
    user_id: str = Field(min_length=1, max_length=64)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    department: str = Field(min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=100)
    join_date: date
    base_salary: Decimal = Decimal("0")
    allowance: Decimal = Decimal("0")
    deductions: Decimal = Decimal("0")
    manager_id: UUID | None = None


class EmployeeUpdate(CamelModel):
    """Partial update; only fields present in the body are applied."""

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, min_length=1, max_length=100)
    title: str | None = Field(default=None, min_length=1, max_length=100)
    join_date: date | None = None
    base_salary: Decimal | None = None
    allowance: Decimal | None = None
    deductions: Decimal | None = None
    manager_id: UUID | None = None
    is_active: bool | None = None


class EmployeeResponse(CamelModel):
    employee_id: UUID
    user_id: str
    first_name: str
    last_name: str
    full_name: str
    email: str | None = None
    department: str
    title: str
    join_date: date
    manager_id: UUID | None = None
    is_active: bool
    base_salary: Money | None = None
    allowance: Money | None = None
    deductions: Money | None = None
    created_at: datetime
    updated_at: datetime


COMPENSATION_KEYS = ("baseSalary", "allowance", "deductions")


# ============================================================================
# Attendance schemas
# ============================================================================


class AttendanceResponse(CamelModel):
    attendance_id: UUID
    employee_id: UUID
    work_date: date
    clock_in_at: datetime | None = None
    clock_out_at: datetime | None = None
    state: AttendanceState
    worked_hours: Money | None = None


class EmployeeAttendanceResponse(AttendanceResponse):
    employee_name: str
    department: str


class AttendanceStatsResponse(CamelModel):
    total_days: int
    completed_days: int
    total_worked_hours: Money


class DateRangeResponse(CamelModel):
    start_date: date
    end_date: date


# ============================================================================
# Leave schemas
# ============================================================================


class LeaveCreate(CamelModel):
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=500)
    leave_type: LeaveType = LeaveType.ANNUAL


class LeaveDecision(CamelModel):
    status: str
    rejection_reason: str | None = Field(default=None, max_length=500)


class LeaveResponse(CamelModel):
    leave_id: UUID
    employee_id: UUID
    leave_type: str
    start_date: date
    end_date: date
    days: int
    reason: str | None = None
    status: str
    rejection_reason: str | None = None
    decided_by: str | None = None
    decided_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollCycleRequest(CamelModel):
    employees: list[str]
    month: int
    year: int


class PayrollUpdate(CamelModel):
    basic: Decimal | None = None
    allowance: Decimal | None = None
    deductions: Decimal | None = None
    tax: Decimal | None = None


class MarkPaidRequest(CamelModel):
    paid_on: date | None = None


class PayrollResponse(CamelModel):
    payroll_id: UUID
    employee_id: UUID
    month: int
    year: int
    basic: Money
    allowance: Money
    deductions: Money
    tax: Money
    net_pay: Money
    paid_on: date | None = None
    payslip_ref: str | None = None
    is_paid: bool
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Performance schemas
# ============================================================================


class GoalInput(CamelModel):
    title: str
    description: str
    target_date: date
    status: str | None = None


class GoalsCreate(CamelModel):
    employee_id: UUID
    goals: list[GoalInput]


class GoalStatusUpdate(CamelModel):
    status: str


class GoalResponse(CamelModel):
    goal_id: UUID
    employee_id: UUID
    title: str
    description: str
    target_date: date
    status: str
    set_by: str
    created_at: datetime
    updated_at: datetime
