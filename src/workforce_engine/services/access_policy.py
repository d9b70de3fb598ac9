"""Access policy: who may read or change which workforce records.

All functions here are pure. Precedence, highest first:

1. admin (or an identity flagged ``is_admin``) and hr: any record, as long as
   the role holds the capability the action requires.
2. manager: records allowed by the injected department scope, again gated
   by capability.
3. any role: self-service actions on records the requester owns.

Everything else is denied. Leave and payroll denials are reported as
"not found" so that callers cannot discover other employees' records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol
from uuid import UUID

from workforce_engine.errors import AccessDenied, NotFoundError


class Role(str, Enum):
    """Roles supplied by the identity resolver."""

    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class Capability(str, Enum):
    """Closed set of capabilities a role or grant may carry."""

    READ_EMPLOYEES = "read_employees"
    WRITE_EMPLOYEES = "write_employees"
    DELETE_EMPLOYEES = "delete_employees"
    READ_ATTENDANCE = "read_attendance"
    WRITE_ATTENDANCE = "write_attendance"
    READ_LEAVE = "read_leave"
    DECIDE_LEAVE = "decide_leave"
    READ_PAYROLL = "read_payroll"
    WRITE_PAYROLL = "write_payroll"
    DELETE_PAYROLL = "delete_payroll"
    VIEW_SALARY = "view_salary"
    READ_GOALS = "read_goals"
    WRITE_GOALS = "write_goals"


class ResourceKind(str, Enum):
    EMPLOYEE = "employee"
    ATTENDANCE = "attendance"
    LEAVE = "leave"
    PAYROLL = "payroll"
    PERFORMANCE = "performance"


class Action(str, Enum):
    READ = "read"
    WRITE = "write"
    DECIDE = "decide"
    DELETE = "delete"


class DenialReason(str, Enum):
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.HR: frozenset(Capability) - {Capability.DELETE_EMPLOYEES, Capability.DELETE_PAYROLL},
    Role.MANAGER: frozenset(
        {
            Capability.READ_EMPLOYEES,
            Capability.READ_ATTENDANCE,
            Capability.READ_LEAVE,
            Capability.DECIDE_LEAVE,
            Capability.READ_GOALS,
            Capability.WRITE_GOALS,
        }
    ),
    Role.EMPLOYEE: frozenset(),
}

# Capability each (kind, action) pair requires from a non-owner
REQUIRED_CAPABILITY: dict[tuple[ResourceKind, Action], Capability] = {
    (ResourceKind.EMPLOYEE, Action.READ): Capability.READ_EMPLOYEES,
    (ResourceKind.EMPLOYEE, Action.WRITE): Capability.WRITE_EMPLOYEES,
    (ResourceKind.EMPLOYEE, Action.DELETE): Capability.DELETE_EMPLOYEES,
    (ResourceKind.ATTENDANCE, Action.READ): Capability.READ_ATTENDANCE,
    (ResourceKind.ATTENDANCE, Action.WRITE): Capability.WRITE_ATTENDANCE,
    (ResourceKind.LEAVE, Action.READ): Capability.READ_LEAVE,
    (ResourceKind.LEAVE, Action.DECIDE): Capability.DECIDE_LEAVE,
    (ResourceKind.PAYROLL, Action.READ): Capability.READ_PAYROLL,
    (ResourceKind.PAYROLL, Action.WRITE): Capability.WRITE_PAYROLL,
    (ResourceKind.PAYROLL, Action.DELETE): Capability.DELETE_PAYROLL,
    (ResourceKind.PERFORMANCE, Action.READ): Capability.READ_GOALS,
    (ResourceKind.PERFORMANCE, Action.WRITE): Capability.WRITE_GOALS,
}

# Actions an owner may always perform on their own records
SELF_SERVICE_ACTIONS: dict[ResourceKind, frozenset[Action]] = {
    ResourceKind.EMPLOYEE: frozenset({Action.READ}),
    ResourceKind.ATTENDANCE: frozenset({Action.READ, Action.WRITE}),
    ResourceKind.LEAVE: frozenset({Action.READ, Action.WRITE}),
    ResourceKind.PAYROLL: frozenset({Action.READ}),
    # goal status updates only; setting goals needs WRITE_GOALS
    ResourceKind.PERFORMANCE: frozenset({Action.READ, Action.WRITE}),
}

CONCEALED_KINDS = frozenset({ResourceKind.LEAVE, ResourceKind.PAYROLL})


@dataclass(frozen=True)
class Identity:
    """Authenticated requester as resolved by the identity layer.

    ``employee_id`` and ``department`` come from the requester's own employee
    profile and are None when the identity has no profile.
    """

    user_id: str
    role: Role
    is_admin: bool = False
    employee_id: UUID | None = None
    department: str | None = None
    grants: frozenset[Capability] = field(default_factory=frozenset)

    @property
    def capabilities(self) -> frozenset[Capability]:
        base = ROLE_CAPABILITIES[Role.ADMIN] if self.is_admin else ROLE_CAPABILITIES[self.role]
        return base | self.grants

    @property
    def is_privileged(self) -> bool:
        """Admin or hr: organisation-wide access."""
        return self.is_admin or self.role in (Role.ADMIN, Role.HR)

    def owns(self, owner_employee_id: UUID | None) -> bool:
        return (
            self.employee_id is not None
            and owner_employee_id is not None
            and self.employee_id == owner_employee_id
        )


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: DenialReason | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = PolicyDecision(allowed=True)


class DepartmentScope(Protocol):
    """Decides which departments a manager may act on."""

    def allows(self, identity: Identity, department: str | None) -> bool:
        ...

    def restrict_to(self, identity: Identity) -> str | None:
        """Department list queries must be limited to, or None for no limit."""
        ...


class UnrestrictedDepartmentScope:
    """Managers act across every department."""

    def allows(self, identity: Identity, department: str | None) -> bool:
        return True

    def restrict_to(self, identity: Identity) -> str | None:
        return None


class SameDepartmentScope:
    """Managers act only within their own department."""

    def allows(self, identity: Identity, department: str | None) -> bool:
        if identity.department is None:
            return False
        return department is None or department == identity.department

    def restrict_to(self, identity: Identity) -> str | None:
        # An empty string matches no department for managers without a profile
        return identity.department or ""


DEPARTMENT_SCOPES: dict[str, type] = {
    "unrestricted": UnrestrictedDepartmentScope,
    "same_department": SameDepartmentScope,
}


def department_scope_from_name(name: str) -> DepartmentScope:
    try:
        return DEPARTMENT_SCOPES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown manager department scope {name!r}; "
            f"expected one of {sorted(DEPARTMENT_SCOPES)}"
        ) from None


class AccessPolicy:
    """Evaluates (identity, action, resource) triples."""

    def __init__(self, department_scope: DepartmentScope | None = None):
        self.department_scope = department_scope or UnrestrictedDepartmentScope()

    def evaluate(
        self,
        identity: Identity,
        action: Action,
        kind: ResourceKind,
        owner_employee_id: UUID | None = None,
        owner_department: str | None = None,
    ) -> PolicyDecision:
        required = REQUIRED_CAPABILITY.get((kind, action))
        holds = required is not None and required in identity.capabilities

        if holds:
            if identity.is_privileged:
                return ALLOW
            if identity.role != Role.MANAGER:
                # explicit grant on an employee identity
                return ALLOW
            if self.department_scope.allows(identity, owner_department):
                return ALLOW

        if identity.owns(owner_employee_id) and action in SELF_SERVICE_ACTIONS[kind]:
            return ALLOW

        if kind in CONCEALED_KINDS and owner_employee_id is not None:
            return PolicyDecision(allowed=False, reason=DenialReason.NOT_FOUND)
        return PolicyDecision(allowed=False, reason=DenialReason.FORBIDDEN)

    def require(
        self,
        identity: Identity,
        action: Action,
        kind: ResourceKind,
        owner_employee_id: UUID | None = None,
        owner_department: str | None = None,
        not_found: type[NotFoundError] = NotFoundError,
    ) -> None:
        """Raise unless the decision allows the action.

        ``not_found`` is the error raised for concealed denials, so it matches
        the error a missing record of the same kind produces.
        """
        decision = self.evaluate(identity, action, kind, owner_employee_id, owner_department)
        if decision.allowed:
            return
        if decision.reason == DenialReason.NOT_FOUND:
            raise not_found()
        raise AccessDenied()

    def has_capability(self, identity: Identity, capability: Capability) -> bool:
        return capability in identity.capabilities

    def can_view_salary(self, identity: Identity, owner_employee_id: UUID | None) -> bool:
        """Compensation is visible to admin, hr and the employee themself."""
        if identity.is_privileged:
            return True
        if identity.owns(owner_employee_id):
            return True
        return Capability.VIEW_SALARY in identity.grants

    def scope_employee_filter(
        self,
        identity: Identity,
        kind: ResourceKind,
        requested_employee_id: UUID | None,
    ) -> UUID | None:
        """Employee filter to apply to a list query before it is built.

        Callers without the read capability for ``kind`` are pinned to their
        own employee id no matter what they asked for.
        """
        required = REQUIRED_CAPABILITY[(kind, Action.READ)]
        if required in identity.capabilities:
            return requested_employee_id
        if identity.employee_id is None:
            raise AccessDenied("No employee profile is linked to this identity")
        return identity.employee_id

    def scope_department_filter(
        self,
        identity: Identity,
        requested_department: str | None,
    ) -> str | None:
        """Department filter for list queries, applying the manager scope."""
        if identity.is_privileged or identity.role != Role.MANAGER:
            return requested_department
        if requested_department is not None:
            if not self.department_scope.allows(identity, requested_department):
                raise AccessDenied("Access denied for this department")
            return requested_department
        return self.department_scope.restrict_to(identity)
