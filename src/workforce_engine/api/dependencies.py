"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workforce_engine.calculators import SalaryCalculator
from workforce_engine.clock import Clock, SystemClock
from workforce_engine.config import get_settings
from workforce_engine.database import init_db, unit_of_work
from workforce_engine.errors import AuthenticationRequired, ValidationError
from workforce_engine.services.access_policy import (
    AccessPolicy,
    Capability,
    Identity,
    Role,
    department_scope_from_name,
)
from workforce_engine.services.attendance_service import AttendanceService
from workforce_engine.services.employee_service import EmployeeService, find_by_user
from workforce_engine.services.leave_service import LeaveService
from workforce_engine.services.payroll_service import PayrollService
from workforce_engine.services.performance_service import PerformanceService


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the configured database."""
    _, factory = init_db()
    return factory


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


async def get_db_session(factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with factory() as session:
        yield session


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    return SystemClock(get_settings().attendance_timezone)


@lru_cache(maxsize=1)
def get_policy() -> AccessPolicy:
    return AccessPolicy(department_scope_from_name(get_settings().manager_department_scope))


@lru_cache(maxsize=1)
def get_calculator() -> SalaryCalculator:
    return SalaryCalculator(get_settings().tax_rate)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
ClockDep = Annotated[Clock, Depends(get_clock)]
PolicyDep = Annotated[AccessPolicy, Depends(get_policy)]
CalculatorDep = Annotated[SalaryCalculator, Depends(get_calculator)]


def _parse_grants(raw: str | None) -> frozenset[Capability]:
    if not raw:
        return frozenset()
    grants = set()
    for name in raw.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            grants.add(Capability(name))
        except ValueError:
            raise ValidationError(f"Unknown capability grant: {name}") from None
    return frozenset(grants)


async def get_identity(
    db: DbSession,
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_user_is_admin: Annotated[str | None, Header()] = None,
    x_user_grants: Annotated[str | None, Header()] = None,
) -> Identity:
    """Resolve the authenticated caller from gateway headers.

    The employee profile is looked up by user id; callers without one keep
    ``employee_id=None`` and can only use operations that do not need it.
    """
    if not x_user_id:
        raise AuthenticationRequired("X-User-Id header is required")
    try:
        role = Role((x_user_role or Role.EMPLOYEE.value).strip().lower())
    except ValueError:
        raise AuthenticationRequired(f"Unknown role: {x_user_role}") from None

    async with unit_of_work(db):
        employee = await find_by_user(db, x_user_id)

    active = employee is not None and employee.is_active
    return Identity(
        user_id=x_user_id,
        role=role,
        is_admin=(x_user_is_admin or "").strip().lower() in ("1", "true", "yes"),
        employee_id=employee.employee_id if active else None,
        department=employee.department if active else None,
        grants=_parse_grants(x_user_grants),
    )


CurrentIdentity = Annotated[Identity, Depends(get_identity)]


def get_employee_service(db: DbSession, policy: PolicyDep) -> EmployeeService:
    return EmployeeService(db, policy)


def get_attendance_service(db: DbSession, clock: ClockDep, policy: PolicyDep) -> AttendanceService:
    return AttendanceService(db, clock, policy)


def get_leave_service(db: DbSession, clock: ClockDep, policy: PolicyDep) -> LeaveService:
    return LeaveService(db, clock, policy)


def get_payroll_service(
    factory: SessionFactory,
    clock: ClockDep,
    calculator: CalculatorDep,
    policy: PolicyDep,
) -> PayrollService:
    settings = get_settings()
    return PayrollService(
        factory,
        clock,
        calculator,
        policy,
        batch_size=settings.payroll_batch_size,
        min_year=settings.payroll_min_year,
    )


def get_performance_service(
    db: DbSession, clock: ClockDep, policy: PolicyDep
) -> PerformanceService:
    return PerformanceService(db, clock, policy)


EmployeeServiceDep = Annotated[EmployeeService, Depends(get_employee_service)]
AttendanceServiceDep = Annotated[AttendanceService, Depends(get_attendance_service)]
LeaveServiceDep = Annotated[LeaveService, Depends(get_leave_service)]
PayrollServiceDep = Annotated[PayrollService, Depends(get_payroll_service)]
PerformanceServiceDep = Annotated[PerformanceService, Depends(get_performance_service)]
