"""Tests for the attendance state engine."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from workforce_engine.database import unit_of_work
from workforce_engine.errors import (
    AccessDenied,
    AlreadyClockedIn,
    AlreadyClockedOut,
    EmployeeProfileNotFound,
    InvalidDateRange,
    MustClockInFirst,
    NoClockInFound,
)
from workforce_engine.models import AttendanceRecord, AttendanceState
from workforce_engine.services.access_policy import AccessPolicy, Role, SameDepartmentScope
from workforce_engine.services.attendance_service import (
    AttendanceFilters,
    AttendanceService,
    resolve_range,
)


@pytest.fixture
def service(session, clock, policy) -> AttendanceService:
    return AttendanceService(session, clock, policy)


@pytest.fixture
def add_day(session_factory):
    """Insert a finished attendance day directly."""

    async def _add(employee, work_date: date, hours: float | None = 8.0) -> None:
        clock_in_at = datetime.combine(work_date, datetime.min.time(), tzinfo=timezone.utc) + timedelta(hours=9)
        async with session_factory() as session, unit_of_work(session):
            session.add(
                AttendanceRecord(
                    employee_id=employee.employee_id,
                    work_date=work_date,
                    clock_in_at=clock_in_at,
                    clock_out_at=clock_in_at + timedelta(hours=hours) if hours is not None else None,
                )
            )

    return _add


async def count_records(session_factory, employee_id) -> int:
    async with session_factory() as session:
        return await session.scalar(
            select(func.count())
            .select_from(AttendanceRecord)
            .where(AttendanceRecord.employee_id == employee_id)
        )


class TestClockTransitions:
    """not_clocked_in -> clocked_in -> clocked_out."""

    async def test_clock_in_creates_todays_record(self, service, make_employee, clock):
        employee = await make_employee()

        record = await service.clock_in(employee.employee_id)

        assert record.work_date == clock.today()
        assert record.state == AttendanceState.CLOCKED_IN
        assert record.clock_out_at is None

    async def test_second_clock_in_fails(self, service, make_employee):
        employee = await make_employee()
        await service.clock_in(employee.employee_id)

        with pytest.raises(AlreadyClockedIn):
            await service.clock_in(employee.employee_id)

    async def test_clock_in_after_clock_out_fails(self, service, make_employee):
        """A finished day cannot be reopened by clocking in again."""
        employee = await make_employee()
        await service.clock_in(employee.employee_id)
        await service.clock_out(employee.employee_id)

        with pytest.raises(AlreadyClockedIn):
            await service.clock_in(employee.employee_id)

    async def test_clock_out_records_worked_hours(self, service, make_employee, clock):
        employee = await make_employee()
        await service.clock_in(employee.employee_id)
        clock.advance(hours=8, minutes=30)

        record = await service.clock_out(employee.employee_id)

        assert record.state == AttendanceState.CLOCKED_OUT
        assert record.worked_hours == Decimal("8.50")

    async def test_clock_out_without_record(self, service, make_employee):
        employee = await make_employee()

        with pytest.raises(NoClockInFound):
            await service.clock_out(employee.employee_id)

    async def test_clock_out_before_clock_in(self, service, make_employee, session_factory, clock):
        """A day record without clock-in refuses clock-out."""
        employee = await make_employee()
        async with session_factory() as session, unit_of_work(session):
            session.add(AttendanceRecord(employee_id=employee.employee_id, work_date=clock.today()))

        with pytest.raises(MustClockInFirst):
            await service.clock_out(employee.employee_id)

    async def test_record_without_clock_in_accepts_clock_in(
        self, service, make_employee, session_factory, clock
    ):
        employee = await make_employee()
        async with session_factory() as session, unit_of_work(session):
            session.add(AttendanceRecord(employee_id=employee.employee_id, work_date=clock.today()))

        record = await service.clock_in(employee.employee_id)

        assert record.state == AttendanceState.CLOCKED_IN
        assert await count_records(session_factory, employee.employee_id) == 1

    async def test_double_clock_out_fails(self, service, make_employee):
        employee = await make_employee()
        await service.clock_in(employee.employee_id)
        await service.clock_out(employee.employee_id)

        with pytest.raises(AlreadyClockedOut):
            await service.clock_out(employee.employee_id)

    async def test_new_day_starts_fresh(self, service, make_employee, clock):
        employee = await make_employee()
        await service.clock_in(employee.employee_id)
        await service.clock_out(employee.employee_id)
        clock.advance(days=1)

        record = await service.clock_in(employee.employee_id)

        assert record.work_date == date(2024, 3, 16)

    async def test_unknown_or_inactive_employee(self, service, make_employee):
        inactive = await make_employee(is_active=False)

        with pytest.raises(EmployeeProfileNotFound):
            await service.clock_in(uuid4())
        with pytest.raises(EmployeeProfileNotFound):
            await service.clock_in(inactive.employee_id)
        with pytest.raises(EmployeeProfileNotFound):
            await service.clock_in(None)

    async def test_today(self, service, make_employee):
        employee = await make_employee()
        assert await service.today(employee.employee_id) is None

        await service.clock_in(employee.employee_id)

        record = await service.today(employee.employee_id)
        assert record is not None
        assert record.state == AttendanceState.CLOCKED_IN


class TestConcurrentClockIn:
    """At most one record per (employee, day) under concurrency."""

    async def test_concurrent_clock_in_creates_one_record(
        self, make_employee, session_factory, clock, policy
    ):
        employee = await make_employee()

        async def attempt():
            async with session_factory() as session:
                return await AttendanceService(session, clock, policy).clock_in(employee.employee_id)

        results = await asyncio.gather(*(attempt() for _ in range(5)), return_exceptions=True)

        successes = [r for r in results if isinstance(r, AttendanceRecord)]
        conflicts = [r for r in results if isinstance(r, AlreadyClockedIn)]
        assert len(successes) == 1
        assert len(conflicts) == 4
        assert await count_records(session_factory, employee.employee_id) == 1


class TestSummary:
    """Per-employee history."""

    async def test_defaults_to_current_month_newest_first(self, service, make_employee, add_day):
        employee = await make_employee()
        await add_day(employee, date(2024, 2, 29))
        await add_day(employee, date(2024, 3, 1), hours=8)
        await add_day(employee, date(2024, 3, 4), hours=7.5)
        await add_day(employee, date(2024, 3, 5), hours=None)

        summary = await service.summary(employee.employee_id)

        assert summary.range.start == date(2024, 3, 1)
        assert summary.range.end == date(2024, 3, 31)
        assert [r.work_date for r in summary.page.items] == [
            date(2024, 3, 5),
            date(2024, 3, 4),
            date(2024, 3, 1),
        ]
        assert summary.stats.total_days == 3
        assert summary.stats.completed_days == 2
        assert summary.stats.total_worked_hours == Decimal("15.50")

    async def test_limit_is_clamped(self, service, make_employee):
        employee = await make_employee()

        summary = await service.summary(employee.employee_id, limit=5000)

        assert summary.page.request.limit == 100

    async def test_pagination(self, service, make_employee, add_day):
        employee = await make_employee()
        for day in range(1, 8):
            await add_day(employee, date(2024, 3, day))

        summary = await service.summary(employee.employee_id, page=2, limit=3)

        assert [r.work_date.day for r in summary.page.items] == [4, 3, 2]
        assert summary.page.pagination()["totalPages"] == 3

    async def test_invalid_range(self, service, make_employee):
        employee = await make_employee()
        with pytest.raises(InvalidDateRange):
            await service.summary(employee.employee_id, date(2024, 3, 10), date(2024, 3, 1))

    async def test_unknown_employee(self, service):
        with pytest.raises(EmployeeProfileNotFound):
            await service.summary(uuid4())

    def test_resolve_range_fills_missing_bound(self):
        assert resolve_range(date(2024, 2, 10), None, date(2024, 3, 15)).end == date(2024, 2, 29)
        assert resolve_range(None, date(2024, 2, 10), date(2024, 3, 15)).start == date(2024, 2, 1)


class TestScopedSummaries:
    """Scoping is applied before the query is built."""

    async def test_employee_cannot_widen_filter(
        self, service, make_employee, add_day, identity_for
    ):
        """An employee asking for a colleague's rows only ever gets their own."""
        alice = await make_employee()
        bob = await make_employee(first_name="Bob")
        await add_day(alice, date(2024, 3, 1))
        await add_day(bob, date(2024, 3, 1))
        await add_day(bob, date(2024, 3, 2))

        page = await service.all_employees_summary(
            identity_for(alice), AttendanceFilters(employee_id=bob.employee_id)
        )

        assert page.total == 1
        assert {row.record.employee_id for row in page.items} == {alice.employee_id}

    async def test_hr_sees_everyone(self, service, make_employee, add_day, hr):
        alice = await make_employee()
        bob = await make_employee(first_name="Bob", department="Sales")
        await add_day(alice, date(2024, 3, 1))
        await add_day(bob, date(2024, 3, 1))

        page = await service.all_employees_summary(hr, AttendanceFilters())
        sales = await service.all_employees_summary(hr, AttendanceFilters(department="Sales"))

        assert page.total == 2
        assert [row.employee_name for row in sales.items] == ["Bob Example"]

    async def test_manager_same_department_scope(
        self, session, clock, make_employee, add_day, identity_for
    ):
        service = AttendanceService(session, clock, AccessPolicy(SameDepartmentScope()))
        manager = await make_employee(department="Engineering")
        engineer = await make_employee(department="Engineering")
        seller = await make_employee(department="Sales")
        await add_day(engineer, date(2024, 3, 1))
        await add_day(seller, date(2024, 3, 1))
        identity = identity_for(manager, role=Role.MANAGER)

        page = await service.all_employees_summary(identity, AttendanceFilters())
        assert {row.department for row in page.items} == {"Engineering"}

        with pytest.raises(AccessDenied):
            await service.all_employees_summary(identity, AttendanceFilters(department="Sales"))

    async def test_employee_summary_policy(self, service, make_employee, add_day, identity_for):
        alice = await make_employee()
        bob = await make_employee()
        await add_day(bob, date(2024, 3, 1))

        own = await service.employee_summary(identity_for(bob), bob.employee_id)
        assert own.stats.total_days == 1

        with pytest.raises(AccessDenied):
            await service.employee_summary(identity_for(alice), bob.employee_id)
        with pytest.raises(EmployeeProfileNotFound):
            await service.employee_summary(identity_for(alice), uuid4())
