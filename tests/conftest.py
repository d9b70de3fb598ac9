"""Pytest fixtures for workforce engine tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.calculators import SalaryCalculator
from workforce_engine.clock import FixedClock
from workforce_engine.database import create_engine, create_schema, make_session_factory, unit_of_work
from workforce_engine.models import Employee
from workforce_engine.services.access_policy import AccessPolicy, Identity, Role

# Friday 2024-03-15, 09:00 UTC
TEST_NOW = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite per test, so separate sessions see each other's commits."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'workforce.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TEST_NOW)


@pytest.fixture
def policy() -> AccessPolicy:
    return AccessPolicy()


@pytest.fixture
def calculator() -> SalaryCalculator:
    return SalaryCalculator(Decimal("0.10"))


@pytest.fixture
def make_employee(session_factory):
    """Insert an employee profile and return it."""

    async def _make(**overrides) -> Employee:
        values = {
            "user_id": f"user-{uuid4().hex[:8]}",
            "first_name": "Alice",
            "last_name": "Example",
            "email": "alice@example.com",
            "department": "Engineering",
            "title": "Engineer",
            "join_date": date(2022, 1, 10),
            "base_salary": Decimal("30000"),
            "allowance": Decimal("5000"),
            "deductions": Decimal("2000"),
            "is_active": True,
        }
        values.update(overrides)
        async with session_factory() as session, unit_of_work(session):
            employee = Employee(**values)
            session.add(employee)
            await session.flush()
        return employee

    return _make


@pytest.fixture
def identity_for():
    """Build the identity the API would resolve for an employee profile."""

    def _identity(employee: Employee | None = None, role: Role = Role.EMPLOYEE, **overrides) -> Identity:
        values = {
            "user_id": employee.user_id if employee is not None else f"user-{uuid4().hex[:8]}",
            "role": role,
            "employee_id": employee.employee_id if employee is not None else None,
            "department": employee.department if employee is not None else None,
        }
        values.update(overrides)
        return Identity(**values)

    return _identity


@pytest.fixture
def admin() -> Identity:
    return Identity(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def hr() -> Identity:
    return Identity(user_id="hr-1", role=Role.HR)
