"""Leave lifecycle engine: submission, decision and cancellation."""

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
    AlreadyStarted,
    EmployeeProfileNotFound,
    InvalidDecision,
    InvalidRange,
    LeaveNotFound,
    NotCancellable,
    NotPending,
    OverlappingRequest,
    PastRequest,
    PastStartDate,
    RejectionReasonRequired,
    ValidationError,
)
from workforce_engine.models import Employee, LeaveRequest, LeaveType
from workforce_engine.pagination import LEAVE_PAGE_LIMIT, Page, PageRequest
from workforce_engine.services.access_policy import (
    AccessPolicy,
    Action,
    Capability,
    Identity,
    ResourceKind,
)
from workforce_engine.services.employee_service import load_employee, require_active_employee
from workforce_engine.services.leave_state_machine import (
    InvalidTransitionError,
    LeaveStateMachine,
    LeaveStatus,
    leave_days,
)

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 500
DEFAULT_PAGE_SIZE = 10


@dataclass(frozen=True)
class LeaveFilters:
    status: str | None = None
    employee_id: UUID | None = None
    department: str | None = None
    leave_type: str | None = None


def _leave_type(value: LeaveType | str) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        raise ValidationError(
            f"Invalid leave type {value!r}; expected one of {[t.value for t in LeaveType]}"
        ) from None


def _leave_status(value: str) -> LeaveStatus:
    try:
        return LeaveStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid leave status {value!r}; expected one of {[s.value for s in LeaveStatus]}"
        ) from None


class LeaveService:
    """Leave request lifecycle.

    Transitions:
    - request_leave: creates a Pending request
    - decide_leave: Pending -> Approved | Rejected (approver)
    - cancel_leave: Pending -> Cancelled (owning employee, before start)

    Status changes are conditional updates on ``status = 'Pending'`` so a
    request is decided at most once even under concurrent calls.
    """

    def __init__(self, session: AsyncSession, clock: Clock, policy: AccessPolicy):
        self.session = session
        self.clock = clock
        self.policy = policy

    async def _load(self, leave_id: UUID) -> LeaveRequest | None:
        result = await self.session.execute(
            select(LeaveRequest)
            .where(LeaveRequest.leave_id == leave_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _transition(
        self,
        leave: LeaveRequest,
        to_status: LeaveStatus,
        **values,
    ) -> bool:
        """Apply a status change only if the row is still Pending."""
        result = await self.session.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.leave_id == leave.leave_id,
                LeaveRequest.status == LeaveStatus.PENDING.value,
            )
            .values(status=to_status.value, updated_at=self.clock.now(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def request_leave(
        self,
        employee_id: UUID | None,
        start_date: date,
        end_date: date,
        reason: str | None = None,
        leave_type: LeaveType | str = LeaveType.ANNUAL,
    ) -> LeaveRequest:
        if end_date < start_date:
            raise InvalidRange()
        if start_date < self.clock.today():
            raise PastStartDate()
        if reason is not None and len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters")
        kind = _leave_type(leave_type)

        async with unit_of_work(self.session):
            # Row lock serializes concurrent submissions for the same employee
            employee = await require_active_employee(self.session, employee_id, for_update=True)

            conflict = await self.session.scalar(
                select(LeaveRequest.leave_id)
                .where(
                    LeaveRequest.employee_id == employee.employee_id,
                    LeaveRequest.status.in_([s.value for s in LeaveStateMachine.ACTIVE]),
                    LeaveRequest.start_date <= end_date,
                    LeaveRequest.end_date >= start_date,
                )
                .limit(1)
            )
            if conflict is not None:
                raise OverlappingRequest(details={"conflictingLeaveId": str(conflict)})

            leave = LeaveRequest(
                employee_id=employee.employee_id,
                leave_type=kind.value,
                start_date=start_date,
                end_date=end_date,
                days=leave_days(start_date, end_date),
                reason=reason,
                status=LeaveStatus.PENDING.value,
            )
            self.session.add(leave)
            await self.session.flush()

        logger.info(
            "leave_requested",
            extra={
                "leave_id": str(leave.leave_id),
                "employee_id": str(leave.employee_id),
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )
        return leave

    async def decide_leave(
        self,
        identity: Identity,
        leave_id: UUID,
        decision: LeaveStatus | str,
        rejection_reason: str | None = None,
    ) -> LeaveRequest:
        try:
            status = LeaveStatus(decision)
        except ValueError:
            raise InvalidDecision() from None
        if not LeaveStateMachine.is_decision(status):
            raise InvalidDecision()
        if not self.policy.has_capability(identity, Capability.DECIDE_LEAVE):
            raise AccessDenied()

        async with unit_of_work(self.session):
            leave = await self._load(leave_id)
            if leave is None:
                raise LeaveNotFound()
            owner = await load_employee(self.session, leave.employee_id)
            self.policy.require(
                identity,
                Action.DECIDE,
                ResourceKind.LEAVE,
                owner_employee_id=leave.employee_id,
                owner_department=owner.department if owner else None,
                not_found=LeaveNotFound,
            )

            try:
                LeaveStateMachine.validate_transition(leave.status, status)
            except InvalidTransitionError as exc:
                raise NotPending(str(exc)) from exc
            if leave.start_date < self.clock.today():
                raise PastRequest()
            reason = (rejection_reason or "").strip()
            if status == LeaveStatus.REJECTED and not reason:
                raise RejectionReasonRequired()

            changed = await self._transition(
                leave,
                status,
                decided_by=identity.user_id,
                decided_at=self.clock.now(),
                rejection_reason=reason if status == LeaveStatus.REJECTED else None,
            )
            if not changed:
                raise NotPending()
            leave = await self._load(leave_id)

        logger.info(
            "leave_decided",
            extra={
                "leave_id": str(leave_id),
                "status": status.value,
                "decided_by": identity.user_id,
            },
        )
        return leave

    async def cancel_leave(self, leave_id: UUID, employee_id: UUID | None) -> LeaveRequest:
        """Owner-only cancellation; foreign requests look like missing ones."""
        async with unit_of_work(self.session):
            leave = await self._load(leave_id)
            if leave is None or employee_id is None or leave.employee_id != employee_id:
                raise LeaveNotFound()
            try:
                LeaveStateMachine.validate_transition(leave.status, LeaveStatus.CANCELLED)
            except InvalidTransitionError as exc:
                raise NotCancellable(str(exc)) from exc
            if leave.start_date <= self.clock.today():
                raise AlreadyStarted()

            if not await self._transition(leave, LeaveStatus.CANCELLED):
                raise NotCancellable()
            leave = await self._load(leave_id)

        logger.info(
            "leave_cancelled",
            extra={"leave_id": str(leave_id), "employee_id": str(employee_id)},
        )
        return leave

    async def get_leave(self, identity: Identity, leave_id: UUID) -> LeaveRequest:
        async with unit_of_work(self.session):
            leave = await self._load(leave_id)
            if leave is None:
                raise LeaveNotFound()
            owner = await load_employee(self.session, leave.employee_id)
        self.policy.require(
            identity,
            Action.READ,
            ResourceKind.LEAVE,
            owner_employee_id=leave.employee_id,
            owner_department=owner.department if owner else None,
            not_found=LeaveNotFound,
        )
        return leave

    async def my_leaves(
        self,
        identity: Identity,
        status: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[LeaveRequest]:
        if identity.employee_id is None:
            raise EmployeeProfileNotFound()
        return await self._query(
            LeaveFilters(status=status, employee_id=identity.employee_id),
            PageRequest.build(page, limit, default=DEFAULT_PAGE_SIZE, ceiling=LEAVE_PAGE_LIMIT),
        )

    async def list_leaves(
        self,
        identity: Identity,
        filters: LeaveFilters,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[LeaveRequest]:
        """Requests visible to the caller; narrowed before the query is built."""
        employee_id = self.policy.scope_employee_filter(
            identity, ResourceKind.LEAVE, filters.employee_id
        )
        department = self.policy.scope_department_filter(identity, filters.department)
        scoped = LeaveFilters(
            status=filters.status,
            employee_id=employee_id,
            department=department,
            leave_type=filters.leave_type,
        )
        return await self._query(
            scoped,
            PageRequest.build(page, limit, default=DEFAULT_PAGE_SIZE, ceiling=LEAVE_PAGE_LIMIT),
        )

    async def _query(self, filters: LeaveFilters, page_request: PageRequest) -> Page[LeaveRequest]:
        query = select(LeaveRequest)
        if filters.status is not None:
            query = query.where(LeaveRequest.status == _leave_status(filters.status).value)
        if filters.leave_type is not None:
            query = query.where(LeaveRequest.leave_type == _leave_type(filters.leave_type).value)
        if filters.employee_id is not None:
            query = query.where(LeaveRequest.employee_id == filters.employee_id)
        if filters.department is not None:
            query = query.join(Employee, Employee.employee_id == LeaveRequest.employee_id).where(
                Employee.department == filters.department
            )

        async with unit_of_work(self.session):
            total = await self.session.scalar(
                select(func.count()).select_from(query.subquery())
            ) or 0
            result = await self.session.execute(
                query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.start_date.desc())
                .offset(page_request.offset)
                .limit(page_request.limit)
            )
            leaves = list(result.scalars().all())

        return Page(items=leaves, total=total, request=page_request)
