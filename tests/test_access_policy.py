"""Tests for the access policy evaluator."""

from uuid import uuid4

import pytest

from workforce_engine.errors import AccessDenied, LeaveNotFound
from workforce_engine.services.access_policy import (
    AccessPolicy,
    Action,
    Capability,
    DenialReason,
    Identity,
    ResourceKind,
    Role,
    SameDepartmentScope,
    UnrestrictedDepartmentScope,
    department_scope_from_name,
)


def make_identity(role: Role, **overrides) -> Identity:
    values = {
        "user_id": f"{role.value}-user",
        "role": role,
        "employee_id": uuid4(),
        "department": "Engineering",
    }
    values.update(overrides)
    return Identity(**values)


class TestRoleCapabilities:
    """Role defaults and grants."""

    def test_admin_holds_every_capability(self):
        """Admin holds the full capability set."""
        assert make_identity(Role.ADMIN).capabilities == frozenset(Capability)

    def test_is_admin_flag_promotes_any_role(self):
        """is_admin grants admin capabilities regardless of role."""
        identity = make_identity(Role.EMPLOYEE, is_admin=True)
        assert identity.capabilities == frozenset(Capability)
        assert identity.is_privileged is True

    def test_hr_lacks_delete_capabilities(self):
        """HR cannot delete payroll records or employee profiles."""
        capabilities = make_identity(Role.HR).capabilities
        assert Capability.DELETE_PAYROLL not in capabilities
        assert Capability.DELETE_EMPLOYEES not in capabilities
        assert Capability.WRITE_PAYROLL in capabilities

    def test_grants_are_unioned_with_role_defaults(self):
        """Explicit grants extend, never replace, role defaults."""
        identity = make_identity(Role.MANAGER, grants=frozenset({Capability.VIEW_SALARY}))
        assert Capability.VIEW_SALARY in identity.capabilities
        assert Capability.DECIDE_LEAVE in identity.capabilities

    def test_employee_has_no_default_capabilities(self):
        assert make_identity(Role.EMPLOYEE).capabilities == frozenset()

    def test_manager_sets_goals(self):
        capabilities = make_identity(Role.MANAGER).capabilities
        assert Capability.WRITE_GOALS in capabilities
        assert Capability.READ_GOALS in capabilities

    def test_owner_updates_own_goals_only(self):
        """Employees may move their own goals but not set or touch others."""
        policy = AccessPolicy()
        employee = make_identity(Role.EMPLOYEE)

        own = policy.evaluate(
            employee, Action.WRITE, ResourceKind.PERFORMANCE,
            owner_employee_id=employee.employee_id,
        )
        other = policy.evaluate(
            employee, Action.WRITE, ResourceKind.PERFORMANCE, owner_employee_id=uuid4()
        )
        assert own.allowed is True
        assert other.reason == DenialReason.FORBIDDEN


class TestEvaluate:
    """Precedence of the evaluate() rules."""

    def test_admin_and_hr_read_any_record(self):
        """Privileged roles read records owned by anyone."""
        policy = AccessPolicy()
        owner = uuid4()
        for role in (Role.ADMIN, Role.HR):
            decision = policy.evaluate(
                make_identity(role), Action.READ, ResourceKind.PAYROLL, owner_employee_id=owner
            )
            assert decision.allowed is True

    def test_hr_cannot_delete_payroll(self):
        """Capability still gates privileged roles."""
        decision = AccessPolicy().evaluate(
            make_identity(Role.HR), Action.DELETE, ResourceKind.PAYROLL
        )
        assert decision.allowed is False
        assert decision.reason == DenialReason.FORBIDDEN

    def test_manager_unrestricted_by_default(self):
        """Default scope lets managers read attendance in any department."""
        decision = AccessPolicy().evaluate(
            make_identity(Role.MANAGER),
            Action.READ,
            ResourceKind.ATTENDANCE,
            owner_employee_id=uuid4(),
            owner_department="Sales",
        )
        assert decision.allowed is True

    def test_manager_same_department_scope(self):
        """Same-department scope refuses records from other departments."""
        policy = AccessPolicy(SameDepartmentScope())
        manager = make_identity(Role.MANAGER)

        inside = policy.evaluate(
            manager, Action.READ, ResourceKind.ATTENDANCE, uuid4(), "Engineering"
        )
        outside = policy.evaluate(manager, Action.READ, ResourceKind.ATTENDANCE, uuid4(), "Sales")

        assert inside.allowed is True
        assert outside.allowed is False

    def test_manager_cannot_read_payroll(self):
        """Managers hold no payroll capability; foreign payroll is concealed."""
        decision = AccessPolicy().evaluate(
            make_identity(Role.MANAGER), Action.READ, ResourceKind.PAYROLL, uuid4(), "Engineering"
        )
        assert decision.allowed is False
        assert decision.reason == DenialReason.NOT_FOUND

    def test_owner_self_service(self):
        """Employees read and write their own attendance and leave."""
        employee = make_identity(Role.EMPLOYEE)
        policy = AccessPolicy()
        for kind, action in [
            (ResourceKind.ATTENDANCE, Action.WRITE),
            (ResourceKind.LEAVE, Action.WRITE),
            (ResourceKind.LEAVE, Action.READ),
            (ResourceKind.PAYROLL, Action.READ),
            (ResourceKind.EMPLOYEE, Action.READ),
        ]:
            assert policy.evaluate(employee, action, kind, employee.employee_id).allowed

    def test_owner_cannot_decide_own_leave(self):
        """Deciding is not a self-service action."""
        employee = make_identity(Role.EMPLOYEE)
        decision = AccessPolicy().evaluate(
            employee, Action.DECIDE, ResourceKind.LEAVE, employee.employee_id
        )
        assert decision.allowed is False

    def test_foreign_leave_and_payroll_are_concealed(self):
        """Leave and payroll denials look like missing records."""
        employee = make_identity(Role.EMPLOYEE)
        policy = AccessPolicy()
        for kind in (ResourceKind.LEAVE, ResourceKind.PAYROLL):
            decision = policy.evaluate(employee, Action.READ, kind, owner_employee_id=uuid4())
            assert decision.reason == DenialReason.NOT_FOUND

    def test_foreign_employee_profile_is_forbidden(self):
        """Profiles are not concealed: the denial is a plain forbidden."""
        decision = AccessPolicy().evaluate(
            make_identity(Role.EMPLOYEE), Action.READ, ResourceKind.EMPLOYEE, uuid4()
        )
        assert decision.reason == DenialReason.FORBIDDEN

    def test_identity_without_profile_owns_nothing(self):
        """A None employee id never matches a None owner."""
        identity = make_identity(Role.EMPLOYEE, employee_id=None)
        assert identity.owns(None) is False


class TestRequire:
    """require() raises the right error type."""

    def test_concealed_denial_raises_given_not_found(self):
        with pytest.raises(LeaveNotFound):
            AccessPolicy().require(
                make_identity(Role.EMPLOYEE),
                Action.READ,
                ResourceKind.LEAVE,
                owner_employee_id=uuid4(),
                not_found=LeaveNotFound,
            )

    def test_forbidden_raises_access_denied(self):
        with pytest.raises(AccessDenied):
            AccessPolicy().require(make_identity(Role.EMPLOYEE), Action.WRITE, ResourceKind.EMPLOYEE)


class TestSalaryVisibility:
    """can_view_salary is stricter than read access."""

    def test_privileged_and_owner_see_salary(self):
        policy = AccessPolicy()
        employee = make_identity(Role.EMPLOYEE)
        assert policy.can_view_salary(make_identity(Role.ADMIN), uuid4())
        assert policy.can_view_salary(make_identity(Role.HR), uuid4())
        assert policy.can_view_salary(employee, employee.employee_id)

    def test_manager_and_colleague_do_not(self):
        policy = AccessPolicy()
        assert not policy.can_view_salary(make_identity(Role.MANAGER), uuid4())
        assert not policy.can_view_salary(make_identity(Role.EMPLOYEE), uuid4())

    def test_view_salary_grant(self):
        manager = make_identity(Role.MANAGER, grants=frozenset({Capability.VIEW_SALARY}))
        assert AccessPolicy().can_view_salary(manager, uuid4())


class TestQueryScoping:
    """Filters are narrowed before any query is built."""

    def test_employee_is_pinned_to_own_id(self):
        """A permissive filter from an employee is replaced by their own id."""
        employee = make_identity(Role.EMPLOYEE)
        scoped = AccessPolicy().scope_employee_filter(employee, ResourceKind.ATTENDANCE, uuid4())
        assert scoped == employee.employee_id

    def test_employee_without_profile_is_denied(self):
        employee = make_identity(Role.EMPLOYEE, employee_id=None)
        with pytest.raises(AccessDenied):
            AccessPolicy().scope_employee_filter(employee, ResourceKind.LEAVE, None)

    def test_privileged_filter_passes_through(self):
        requested = uuid4()
        scoped = AccessPolicy().scope_employee_filter(
            make_identity(Role.HR), ResourceKind.PAYROLL, requested
        )
        assert scoped == requested

    def test_manager_pinned_for_payroll(self):
        """Managers lack payroll read, so payroll lists only show their own rows."""
        manager = make_identity(Role.MANAGER)
        scoped = AccessPolicy().scope_employee_filter(manager, ResourceKind.PAYROLL, None)
        assert scoped == manager.employee_id

    def test_department_filter_same_department(self):
        policy = AccessPolicy(SameDepartmentScope())
        manager = make_identity(Role.MANAGER)

        assert policy.scope_department_filter(manager, None) == "Engineering"
        assert policy.scope_department_filter(manager, "Engineering") == "Engineering"
        with pytest.raises(AccessDenied):
            policy.scope_department_filter(manager, "Sales")

    def test_department_filter_unrestricted(self):
        manager = make_identity(Role.MANAGER)
        assert AccessPolicy().scope_department_filter(manager, None) is None
        assert AccessPolicy().scope_department_filter(manager, "Sales") == "Sales"


class TestDepartmentScopeConfig:
    def test_known_names(self):
        assert isinstance(department_scope_from_name("unrestricted"), UnrestrictedDepartmentScope)
        assert isinstance(department_scope_from_name("same_department"), SameDepartmentScope)

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            department_scope_from_name("regional")
