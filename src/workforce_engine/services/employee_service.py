"""Employee profile service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.database import unit_of_work
from workforce_engine.errors import (
    AccessDenied,
    ConflictError,
    DuplicateEmployeeProfile,
    EmployeeProfileNotFound,
    InvalidCompensation,
    ValidationError,
)
from workforce_engine.models import Employee
from workforce_engine.pagination import EMPLOYEE_PAGE_LIMIT, Page, PageRequest
from workforce_engine.services.access_policy import (
    AccessPolicy,
    Action,
    Capability,
    Identity,
    ResourceKind,
)

logger = logging.getLogger(__name__)

COMPENSATION_FIELDS = ("base_salary", "allowance", "deductions")

UPDATABLE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "email",
        "department",
        "title",
        "join_date",
        "manager_id",
        "is_active",
        *COMPENSATION_FIELDS,
    }
)

# Columns that may be cleared by sending null
NULLABLE_FIELDS = frozenset({"email", "manager_id"})


@dataclass(frozen=True)
class NewEmployee:
    user_id: str
    first_name: str
    last_name: str
    department: str
    title: str
    join_date: date
    email: str | None = None
    base_salary: Decimal = Decimal("0")
    allowance: Decimal = Decimal("0")
    deductions: Decimal = Decimal("0")
    manager_id: UUID | None = None


@dataclass(frozen=True)
class EmployeeFilters:
    department: str | None = None
    title: str | None = None
    is_active: bool | None = None


async def load_employee(
    session: AsyncSession,
    employee_id: UUID,
    *,
    for_update: bool = False,
) -> Employee | None:
    """Fetch one employee, optionally row-locked for the current transaction."""
    query = select(Employee).where(Employee.employee_id == employee_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def require_active_employee(
    session: AsyncSession,
    employee_id: UUID | None,
    *,
    for_update: bool = False,
) -> Employee:
    """Fetch an active employee or raise EmployeeProfileNotFound."""
    if employee_id is None:
        raise EmployeeProfileNotFound()
    employee = await load_employee(session, employee_id, for_update=for_update)
    if employee is None or not employee.is_active:
        raise EmployeeProfileNotFound()
    return employee


async def find_by_user(session: AsyncSession, user_id: str) -> Employee | None:
    return await session.scalar(select(Employee).where(Employee.user_id == user_id))


def _check_compensation(values: dict[str, Any]) -> None:
    for name in COMPENSATION_FIELDS:
        value = values.get(name)
        if value is not None and Decimal(value) < 0:
            raise InvalidCompensation(f"{name} must be non-negative")


class EmployeeService:
    """CRUD over employee profiles, gated by the access policy."""

    def __init__(self, session: AsyncSession, policy: AccessPolicy):
        self.session = session
        self.policy = policy

    async def create_employee(self, identity: Identity, data: NewEmployee) -> Employee:
        self.policy.require(identity, Action.WRITE, ResourceKind.EMPLOYEE)
        _check_compensation(
            {name: getattr(data, name) for name in COMPENSATION_FIELDS}
        )

        async with unit_of_work(self.session):
            existing = await self.session.scalar(
                select(Employee.employee_id).where(Employee.user_id == data.user_id)
            )
            if existing is not None:
                raise DuplicateEmployeeProfile()
            if data.manager_id is not None:
                await require_active_employee(self.session, data.manager_id)

            employee = Employee(
                user_id=data.user_id,
                first_name=data.first_name,
                last_name=data.last_name,
                email=data.email,
                department=data.department,
                title=data.title,
                join_date=data.join_date,
                base_salary=data.base_salary,
                allowance=data.allowance,
                deductions=data.deductions,
                manager_id=data.manager_id,
                is_active=True,
            )
            self.session.add(employee)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise DuplicateEmployeeProfile() from exc

        logger.info(
            "employee_created",
            extra={"employee_id": str(employee.employee_id), "actor": identity.user_id},
        )
        return employee

    async def get_employee(self, identity: Identity, employee_id: UUID) -> Employee:
        async with unit_of_work(self.session):
            employee = await load_employee(self.session, employee_id)
        if employee is None:
            raise EmployeeProfileNotFound("Employee not found")
        self.policy.require(
            identity,
            Action.READ,
            ResourceKind.EMPLOYEE,
            owner_employee_id=employee.employee_id,
            owner_department=employee.department,
        )
        return employee

    async def get_by_user(self, user_id: str) -> Employee:
        """Own profile lookup for the identity layer."""
        async with unit_of_work(self.session):
            employee = await find_by_user(self.session, user_id)
        if employee is None:
            raise EmployeeProfileNotFound()
        return employee

    async def list_employees(
        self,
        identity: Identity,
        filters: EmployeeFilters,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Employee]:
        if not self.policy.has_capability(identity, Capability.READ_EMPLOYEES):
            raise AccessDenied()
        department = self.policy.scope_department_filter(identity, filters.department)
        page_request = PageRequest.build(page, limit, default=10, ceiling=EMPLOYEE_PAGE_LIMIT)

        query = select(Employee)
        if department is not None:
            query = query.where(Employee.department == department)
        if filters.title:
            query = query.where(Employee.title == filters.title)
        if filters.is_active is not None:
            query = query.where(Employee.is_active == filters.is_active)

        async with unit_of_work(self.session):
            total = await self.session.scalar(
                select(func.count()).select_from(query.subquery())
            ) or 0
            result = await self.session.execute(
                query.order_by(Employee.created_at.desc(), Employee.last_name)
                .offset(page_request.offset)
                .limit(page_request.limit)
            )
            employees = list(result.scalars().all())

        return Page(items=employees, total=total, request=page_request)

    async def update_employee(
        self,
        identity: Identity,
        employee_id: UUID,
        changes: dict[str, Any],
    ) -> Employee:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        cleared = sorted(
            name for name, value in changes.items() if value is None and name not in NULLABLE_FIELDS
        )
        if cleared:
            raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")
        _check_compensation(changes)

        async with unit_of_work(self.session):
            employee = await load_employee(self.session, employee_id, for_update=True)
            if employee is None:
                raise EmployeeProfileNotFound("Employee not found")
            self.policy.require(
                identity,
                Action.WRITE,
                ResourceKind.EMPLOYEE,
                owner_employee_id=employee.employee_id,
                owner_department=employee.department,
            )
            manager_id = changes.get("manager_id")
            if manager_id is not None:
                if manager_id == employee.employee_id:
                    raise ValidationError("An employee cannot manage themself")
                await require_active_employee(self.session, manager_id)

            for name, value in changes.items():
                setattr(employee, name, value)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise ConflictError("Employee update conflicts with stored data") from exc

        logger.info(
            "employee_updated",
            extra={
                "employee_id": str(employee_id),
                "fields": sorted(changes),
                "actor": identity.user_id,
            },
        )
        return employee

    async def deactivate_employee(self, identity: Identity, employee_id: UUID) -> Employee:
        """Soft delete: the profile stays for history but stops being active."""
        async with unit_of_work(self.session):
            employee = await load_employee(self.session, employee_id, for_update=True)
            if employee is None:
                raise EmployeeProfileNotFound("Employee not found")
            self.policy.require(
                identity,
                Action.DELETE,
                ResourceKind.EMPLOYEE,
                owner_employee_id=employee.employee_id,
                owner_department=employee.department,
            )
            employee.is_active = False
            await self.session.flush()

        logger.info(
            "employee_deactivated",
            extra={"employee_id": str(employee_id), "actor": identity.user_id},
        )
        return employee
