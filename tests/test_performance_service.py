"""Tests for performance goal setting and status tracking."""

from datetime import date
from uuid import uuid4

import pytest

from workforce_engine.errors import (
    AccessDenied,
    EmployeeProfileNotFound,
    EmptyGoals,
    GoalNotFound,
    InvalidGoal,
    InvalidGoalStatus,
)
from workforce_engine.models import GoalStatus
from workforce_engine.services.access_policy import AccessPolicy, Role, SameDepartmentScope
from workforce_engine.services.performance_service import NewGoal, PerformanceService

# clock fixture: 2024-03-15
NEXT_QUARTER = date(2024, 6, 30)


def goal(**overrides) -> NewGoal:
    values = {
        "title": "Ship billing v2",
        "description": "Migrate all invoices to the new billing pipeline",
        "target_date": NEXT_QUARTER,
    }
    values.update(overrides)
    return NewGoal(**values)


@pytest.fixture
def service(session, clock, policy) -> PerformanceService:
    return PerformanceService(session, clock, policy)


@pytest.fixture
async def employee(make_employee):
    return await make_employee()


@pytest.fixture
async def manager_identity(make_employee, identity_for):
    manager = await make_employee(first_name="Mona", department="Engineering")
    return identity_for(manager, role=Role.MANAGER)


class TestSetGoals:
    async def test_sets_pending_goals(self, service, employee, hr):
        goals = await service.set_goals(
            hr, employee.employee_id, [goal(), goal(title="Mentor a new hire")]
        )

        assert len(goals) == 2
        assert {g.status for g in goals} == {GoalStatus.PENDING.value}
        assert all(g.employee_id == employee.employee_id for g in goals)
        assert all(g.set_by == "hr-1" for g in goals)

    async def test_initial_status_may_be_given(self, service, employee, hr):
        (created,) = await service.set_goals(
            hr, employee.employee_id, [goal(status="IN_PROGRESS")]
        )

        assert created.status == "IN_PROGRESS"

    async def test_text_is_trimmed(self, service, employee, hr):
        (created,) = await service.set_goals(
            hr, employee.employee_id, [goal(title="  Ship it  ")]
        )

        assert created.title == "Ship it"

    async def test_empty_list(self, service, employee, hr):
        with pytest.raises(EmptyGoals):
            await service.set_goals(hr, employee.employee_id, [])

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"title": "ab"}, "title"),
            ({"title": "  a  "}, "title"),
            ({"description": "too short"}, "description"),
            ({"target_date": date(2024, 3, 15)}, "targetDate"),
            ({"target_date": date(2023, 12, 31)}, "targetDate"),
        ],
    )
    async def test_invalid_goal(self, service, employee, hr, overrides, field):
        with pytest.raises(InvalidGoal) as exc_info:
            await service.set_goals(hr, employee.employee_id, [goal(), goal(**overrides)])

        assert exc_info.value.details[0]["field"] == f"goals[1].{field}"

    async def test_invalid_initial_status(self, service, employee, hr):
        with pytest.raises(InvalidGoalStatus):
            await service.set_goals(hr, employee.employee_id, [goal(status="DONE")])

    async def test_nothing_written_when_one_goal_is_invalid(self, service, employee, hr):
        with pytest.raises(InvalidGoal):
            await service.set_goals(hr, employee.employee_id, [goal(), goal(title="x")])

        page = await service.list_goals(hr, employee.employee_id)
        assert page.total == 0

    async def test_employee_cannot_set_goals(self, service, employee, identity_for):
        with pytest.raises(AccessDenied):
            await service.set_goals(identity_for(employee), employee.employee_id, [goal()])

    async def test_manager_sets_goals(self, service, employee, manager_identity):
        goals = await service.set_goals(manager_identity, employee.employee_id, [goal()])

        assert goals[0].set_by == manager_identity.user_id

    async def test_manager_outside_department(
        self, session, clock, make_employee, manager_identity
    ):
        service = PerformanceService(session, clock, AccessPolicy(SameDepartmentScope()))
        other = await make_employee(department="Sales")

        with pytest.raises(AccessDenied):
            await service.set_goals(manager_identity, other.employee_id, [goal()])

    async def test_unknown_employee(self, service, hr):
        with pytest.raises(EmployeeProfileNotFound):
            await service.set_goals(hr, uuid4(), [goal()])

    async def test_inactive_employee(self, service, make_employee, hr):
        former = await make_employee(is_active=False)

        with pytest.raises(EmployeeProfileNotFound):
            await service.set_goals(hr, former.employee_id, [goal()])


class TestUpdateGoalStatus:
    @pytest.fixture
    async def existing(self, service, employee, hr):
        (created,) = await service.set_goals(hr, employee.employee_id, [goal()])
        return created

    async def test_owner_moves_status(self, service, employee, existing, identity_for):
        updated = await service.update_goal_status(
            identity_for(employee), employee.employee_id, existing.goal_id, "IN_PROGRESS"
        )

        assert updated.status == "IN_PROGRESS"
        assert updated.title == existing.title

    async def test_status_may_move_back(self, service, employee, existing, hr):
        await service.update_goal_status(hr, employee.employee_id, existing.goal_id, "COMPLETED")
        updated = await service.update_goal_status(
            hr, employee.employee_id, existing.goal_id, GoalStatus.PENDING
        )

        assert updated.status == "PENDING"

    async def test_other_employee_forbidden(
        self, service, make_employee, employee, existing, identity_for
    ):
        colleague = await make_employee(first_name="Bob")

        with pytest.raises(AccessDenied):
            await service.update_goal_status(
                identity_for(colleague), employee.employee_id, existing.goal_id, "COMPLETED"
            )

    @pytest.mark.parametrize("value", ["DONE", "", None, "in_progress"])
    async def test_invalid_status(self, service, employee, existing, hr, value):
        with pytest.raises(InvalidGoalStatus):
            await service.update_goal_status(hr, employee.employee_id, existing.goal_id, value)

    async def test_unknown_goal(self, service, employee, existing, hr):
        with pytest.raises(GoalNotFound):
            await service.update_goal_status(hr, employee.employee_id, uuid4(), "COMPLETED")

    async def test_goal_of_another_employee(self, service, make_employee, existing, hr):
        other = await make_employee(first_name="Bob")

        with pytest.raises(GoalNotFound):
            await service.update_goal_status(hr, other.employee_id, existing.goal_id, "COMPLETED")

    async def test_unknown_employee(self, service, existing, hr):
        with pytest.raises(EmployeeProfileNotFound):
            await service.update_goal_status(hr, uuid4(), existing.goal_id, "COMPLETED")


class TestListGoals:
    async def test_employee_sees_only_own_goals(
        self, service, make_employee, employee, hr, identity_for
    ):
        colleague = await make_employee(first_name="Bob")
        await service.set_goals(hr, employee.employee_id, [goal()])
        await service.set_goals(hr, colleague.employee_id, [goal(), goal()])

        page = await service.list_goals(identity_for(employee), colleague.employee_id)

        assert page.total == 1
        assert page.items[0].employee_id == employee.employee_id

    async def test_status_filter(self, service, employee, hr):
        first, _ = await service.set_goals(hr, employee.employee_id, [goal(), goal()])
        await service.update_goal_status(hr, employee.employee_id, first.goal_id, "COMPLETED")

        page = await service.list_goals(hr, employee.employee_id, status="COMPLETED")

        assert [g.goal_id for g in page.items] == [first.goal_id]

    async def test_profile_required_without_read_capability(self, service, identity_for):
        with pytest.raises(AccessDenied):
            await service.list_goals(identity_for(None))
