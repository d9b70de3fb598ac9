"""Attendance state engine: per-employee, per-day clock-in and clock-out."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.clock import Clock
from workforce_engine.database import dialect_insert, unit_of_work
from workforce_engine.errors import (
    AlreadyClockedIn,
    AlreadyClockedOut,
    EmployeeProfileNotFound,
    InvalidDateRange,
    MustClockInFirst,
    NoClockInFound,
)
from workforce_engine.models import AttendanceRecord, Employee
from workforce_engine.pagination import ATTENDANCE_PAGE_LIMIT, Page, PageRequest
from workforce_engine.services.access_policy import (
    AccessPolicy,
    Action,
    Identity,
    ResourceKind,
)
from workforce_engine.services.employee_service import load_employee, require_active_employee

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 30


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date


@dataclass(frozen=True)
class AttendanceStats:
    """Aggregates over the whole requested range, not just one page."""

    total_days: int = 0
    completed_days: int = 0
    total_worked_hours: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class AttendanceFilters:
    employee_id: UUID | None = None
    department: str | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True)
class EmployeeAttendance:
    """An attendance record with the owning employee's display fields."""

    record: AttendanceRecord
    employee_name: str
    department: str


@dataclass
class AttendanceSummary:
    page: Page[AttendanceRecord]
    range: DateRange
    stats: AttendanceStats = field(default_factory=AttendanceStats)


def month_bounds(day: date) -> DateRange:
    last = calendar.monthrange(day.year, day.month)[1]
    return DateRange(start=day.replace(day=1), end=day.replace(day=last))


def resolve_range(start: date | None, end: date | None, today: date) -> DateRange:
    """Fill in a missing bound from the month of the other one (or of today)."""
    if start is None and end is None:
        return month_bounds(today)
    if start is None:
        start = month_bounds(end).start
    if end is None:
        end = month_bounds(start).end
    if end < start:
        raise InvalidDateRange()
    return DateRange(start=start, end=end)


class AttendanceService:
    """Clock-in/clock-out transitions and attendance history.

    States per (employee, day): not_clocked_in -> clocked_in -> clocked_out.
    Uniqueness of (employee, day) is enforced by the table constraint; every
    transition is a single conditional statement so that two concurrent
    requests can never both succeed.
    """

    def __init__(self, session: AsyncSession, clock: Clock, policy: AccessPolicy):
        self.session = session
        self.clock = clock
        self.policy = policy

    async def _find(self, employee_id: UUID, work_date: date) -> AttendanceRecord | None:
        result = await self.session.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date == work_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def clock_in(self, employee_id: UUID | None) -> AttendanceRecord:
        now = self.clock.now()
        today = self.clock.today()

        async with unit_of_work(self.session):
            employee = await require_active_employee(self.session, employee_id)

            inserted = await self.session.execute(
                dialect_insert(self.session, AttendanceRecord.__table__)
                .values(
                    attendance_id=uuid4(),
                    employee_id=employee.employee_id,
                    work_date=today,
                    clock_in_at=now,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=["employee_id", "work_date"])
            )
            if inserted.rowcount == 0:
                # Row exists already; only a record without clock-in may take one
                updated = await self.session.execute(
                    update(AttendanceRecord)
                    .where(
                        AttendanceRecord.employee_id == employee.employee_id,
                        AttendanceRecord.work_date == today,
                        AttendanceRecord.clock_in_at.is_(None),
                    )
                    .values(clock_in_at=now, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if updated.rowcount == 0:
                    raise AlreadyClockedIn()

            record = await self._find(employee.employee_id, today)

        logger.info(
            "clock_in",
            extra={"employee_id": str(employee.employee_id), "work_date": today.isoformat()},
        )
        return record

    async def clock_out(self, employee_id: UUID | None) -> AttendanceRecord:
        now = self.clock.now()
        today = self.clock.today()

        async with unit_of_work(self.session):
            employee = await require_active_employee(self.session, employee_id)

            updated = await self.session.execute(
                update(AttendanceRecord)
                .where(
                    AttendanceRecord.employee_id == employee.employee_id,
                    AttendanceRecord.work_date == today,
                    AttendanceRecord.clock_in_at.is_not(None),
                    AttendanceRecord.clock_out_at.is_(None),
                )
                .values(clock_out_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            record = await self._find(employee.employee_id, today)
            if updated.rowcount == 0:
                if record is None:
                    raise NoClockInFound()
                if record.clock_in_at is None:
                    raise MustClockInFirst()
                raise AlreadyClockedOut()

        logger.info(
            "clock_out",
            extra={
                "employee_id": str(employee.employee_id),
                "work_date": today.isoformat(),
                "worked_hours": str(record.worked_hours),
            },
        )
        return record

    async def today(self, employee_id: UUID | None) -> AttendanceRecord | None:
        """Today's record for the employee, or None before the first clock-in."""
        async with unit_of_work(self.session):
            employee = await require_active_employee(self.session, employee_id)
            return await self._find(employee.employee_id, self.clock.today())

    async def summary(
        self,
        employee_id: UUID | None,
        start_date: date | None = None,
        end_date: date | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> AttendanceSummary:
        """Paginated history for one employee, newest day first."""
        date_range = resolve_range(start_date, end_date, self.clock.today())
        page_request = PageRequest.build(
            page, limit, default=DEFAULT_PAGE_SIZE, ceiling=ATTENDANCE_PAGE_LIMIT
        )

        async with unit_of_work(self.session):
            if employee_id is None or await load_employee(self.session, employee_id) is None:
                raise EmployeeProfileNotFound()

            in_range = (
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date >= date_range.start,
                AttendanceRecord.work_date <= date_range.end,
            )
            stats = await self._stats(*in_range)
            result = await self.session.execute(
                select(AttendanceRecord)
                .where(*in_range)
                .order_by(AttendanceRecord.work_date.desc())
                .offset(page_request.offset)
                .limit(page_request.limit)
            )
            records = list(result.scalars().all())

        return AttendanceSummary(
            page=Page(items=records, total=stats.total_days, request=page_request),
            range=date_range,
            stats=stats,
        )

    async def _stats(self, *conditions) -> AttendanceStats:
        total = await self.session.scalar(
            select(func.count()).select_from(AttendanceRecord).where(*conditions)
        ) or 0
        result = await self.session.execute(
            select(AttendanceRecord.clock_in_at, AttendanceRecord.clock_out_at).where(
                *conditions,
                AttendanceRecord.clock_in_at.is_not(None),
                AttendanceRecord.clock_out_at.is_not(None),
            )
        )
        completed = 0
        seconds = Decimal("0")
        for clock_in_at, clock_out_at in result.all():
            completed += 1
            seconds += Decimal(str((clock_out_at - clock_in_at).total_seconds()))
        hours = (seconds / Decimal("3600")).quantize(Decimal("0.01"))
        return AttendanceStats(total_days=total, completed_days=completed, total_worked_hours=hours)

    async def employee_summary(
        self,
        identity: Identity,
        employee_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> AttendanceSummary:
        async with unit_of_work(self.session):
            employee = await load_employee(self.session, employee_id)
        if employee is None:
            raise EmployeeProfileNotFound()
        self.policy.require(
            identity,
            Action.READ,
            ResourceKind.ATTENDANCE,
            owner_employee_id=employee.employee_id,
            owner_department=employee.department,
        )
        return await self.summary(employee_id, start_date, end_date, page, limit)

    async def all_employees_summary(
        self,
        identity: Identity,
        filters: AttendanceFilters,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[EmployeeAttendance]:
        """Attendance across employees, scoped to what the caller may read.

        Scoping narrows the filters before the query exists: a caller without
        the attendance read capability only ever queries their own rows.
        """
        employee_id = self.policy.scope_employee_filter(
            identity, ResourceKind.ATTENDANCE, filters.employee_id
        )
        department = self.policy.scope_department_filter(identity, filters.department)
        if filters.start_date and filters.end_date and filters.end_date < filters.start_date:
            raise InvalidDateRange()
        page_request = PageRequest.build(
            page, limit, default=DEFAULT_PAGE_SIZE, ceiling=ATTENDANCE_PAGE_LIMIT
        )

        conditions = []
        if employee_id is not None:
            conditions.append(AttendanceRecord.employee_id == employee_id)
        if department is not None:
            conditions.append(Employee.department == department)
        if filters.start_date is not None:
            conditions.append(AttendanceRecord.work_date >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(AttendanceRecord.work_date <= filters.end_date)

        query = (
            select(AttendanceRecord, Employee)
            .join(Employee, Employee.employee_id == AttendanceRecord.employee_id)
            .where(*conditions)
        )

        async with unit_of_work(self.session):
            total = await self.session.scalar(
                select(func.count())
                .select_from(AttendanceRecord)
                .join(Employee, Employee.employee_id == AttendanceRecord.employee_id)
                .where(*conditions)
            ) or 0
            result = await self.session.execute(
                query.order_by(AttendanceRecord.work_date.desc(), Employee.last_name)
                .offset(page_request.offset)
                .limit(page_request.limit)
            )
            rows = [
                EmployeeAttendance(
                    record=record,
                    employee_name=employee.full_name,
                    department=employee.department,
                )
                for record, employee in result.all()
            ]

        return Page(items=rows, total=total, request=page_request)
