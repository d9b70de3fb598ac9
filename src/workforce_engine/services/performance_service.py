"""Performance goals: setting goals for an employee and tracking their status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.clock import Clock
from workforce_engine.database import unit_of_work
from workforce_engine.errors import (
    AccessDenied,
    EmployeeProfileNotFound,
    EmptyGoals,
    GoalNotFound,
    InvalidGoal,
    InvalidGoalStatus,
)
from workforce_engine.models import Employee, GoalStatus, PerformanceGoal
from workforce_engine.pagination import GOAL_PAGE_LIMIT, Page, PageRequest
from workforce_engine.services.access_policy import (
    AccessPolicy,
    Action,
    Capability,
    Identity,
    ResourceKind,
)
from workforce_engine.services.employee_service import load_employee, require_active_employee

logger = logging.getLogger(__name__)

TITLE_LENGTH = (3, 200)
DESCRIPTION_LENGTH = (10, 2000)
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class NewGoal:
    title: str
    description: str
    target_date: date
    status: GoalStatus | str | None = None


def _goal_status(value: GoalStatus | str | None) -> GoalStatus:
    if value is None:
        return GoalStatus.PENDING
    try:
        return GoalStatus(value)
    except ValueError:
        raise InvalidGoalStatus() from None


class PerformanceService:
    """Goal setting and status tracking.

    Goals are set by holders of ``write_goals`` (admin, hr and managers within
    their department scope). Status may also be moved by the employee the goal
    belongs to; statuses move freely between the three values.
    """

    def __init__(self, session: AsyncSession, clock: Clock, policy: AccessPolicy):
        self.session = session
        self.clock = clock
        self.policy = policy

    def _validated(self, index: int, goal: NewGoal) -> PerformanceGoal:
        title = (goal.title or "").strip()
        description = (goal.description or "").strip()
        problem = None
        if not TITLE_LENGTH[0] <= len(title) <= TITLE_LENGTH[1]:
            problem = ("title", "title must be %d to %d characters" % TITLE_LENGTH)
        elif not DESCRIPTION_LENGTH[0] <= len(description) <= DESCRIPTION_LENGTH[1]:
            problem = ("description", "description must be %d to %d characters" % DESCRIPTION_LENGTH)
        elif goal.target_date <= self.clock.today():
            problem = ("targetDate", "target date must be in the future")
        if problem is not None:
            field, message = problem
            raise InvalidGoal(
                f"Goal {index + 1}: {message}",
                details=[{"field": f"goals[{index}].{field}", "message": message}],
            )
        return PerformanceGoal(
            title=title,
            description=description,
            target_date=goal.target_date,
            status=_goal_status(goal.status).value,
        )

    async def set_goals(
        self,
        identity: Identity,
        employee_id: UUID,
        goals: list[NewGoal],
    ) -> list[PerformanceGoal]:
        if not self.policy.has_capability(identity, Capability.WRITE_GOALS):
            raise AccessDenied()
        if not goals:
            raise EmptyGoals()
        rows = [self._validated(index, goal) for index, goal in enumerate(goals)]

        async with unit_of_work(self.session):
            employee = await require_active_employee(self.session, employee_id)
            self.policy.require(
                identity,
                Action.WRITE,
                ResourceKind.PERFORMANCE,
                owner_employee_id=employee.employee_id,
                owner_department=employee.department,
            )
            for row in rows:
                row.employee_id = employee.employee_id
                row.set_by = identity.user_id
            self.session.add_all(rows)
            await self.session.flush()

        logger.info(
            "goals_set",
            extra={
                "employee_id": str(employee_id),
                "count": len(rows),
                "set_by": identity.user_id,
            },
        )
        return rows

    async def update_goal_status(
        self,
        identity: Identity,
        employee_id: UUID,
        goal_id: UUID,
        status: GoalStatus | str,
    ) -> PerformanceGoal:
        if status is None:
            raise InvalidGoalStatus()
        new_status = _goal_status(status)

        async with unit_of_work(self.session):
            employee = await load_employee(self.session, employee_id)
            self.policy.require(
                identity,
                Action.WRITE,
                ResourceKind.PERFORMANCE,
                owner_employee_id=employee_id,
                owner_department=employee.department if employee else None,
            )
            if employee is None:
                raise EmployeeProfileNotFound()

            result = await self.session.execute(
                update(PerformanceGoal)
                .where(
                    PerformanceGoal.goal_id == goal_id,
                    PerformanceGoal.employee_id == employee_id,
                )
                .values(status=new_status.value, updated_at=self.clock.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise GoalNotFound()
            goal = (
                await self.session.execute(
                    select(PerformanceGoal)
                    .where(PerformanceGoal.goal_id == goal_id)
                    .execution_options(populate_existing=True)
                )
            ).scalar_one()

        logger.info(
            "goal_status_updated",
            extra={
                "goal_id": str(goal_id),
                "employee_id": str(employee_id),
                "status": new_status.value,
                "updated_by": identity.user_id,
            },
        )
        return goal

    async def list_goals(
        self,
        identity: Identity,
        employee_id: UUID | None = None,
        status: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[PerformanceGoal]:
        """Goals visible to the caller, newest first."""
        employee_id = self.policy.scope_employee_filter(
            identity, ResourceKind.PERFORMANCE, employee_id
        )
        department = self.policy.scope_department_filter(identity, None)
        page_request = PageRequest.build(
            page, limit, default=DEFAULT_PAGE_SIZE, ceiling=GOAL_PAGE_LIMIT
        )

        query = select(PerformanceGoal)
        if status is not None:
            query = query.where(PerformanceGoal.status == _goal_status(status).value)
        if employee_id is not None:
            query = query.where(PerformanceGoal.employee_id == employee_id)
        if department is not None:
            query = query.join(Employee, Employee.employee_id == PerformanceGoal.employee_id).where(
                Employee.department == department
            )

        async with unit_of_work(self.session):
            total = await self.session.scalar(
                select(func.count()).select_from(query.subquery())
            ) or 0
            result = await self.session.execute(
                query.order_by(PerformanceGoal.created_at.desc(), PerformanceGoal.target_date)
                .offset(page_request.offset)
                .limit(page_request.limit)
            )
            goals = list(result.scalars().all())

        return Page(items=goals, total=total, request=page_request)
