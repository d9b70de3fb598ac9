"""Payroll batch engine: per-period payroll records with partial-failure runs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workforce_engine.calculators import SalaryCalculator, SalaryComponents
from workforce_engine.clock import Clock
from workforce_engine.database import dialect_insert, unit_of_work
from workforce_engine.errors import (
    AlreadyPaid,
    AuthorizationError,
    EmptyBatch,
    InvalidAmount,
    InvalidMonth,
    InvalidYear,
    PayrollCycleFailed,
    PayrollNotFound,
    ValidationError,
)
from workforce_engine.models import PayrollRecord
from workforce_engine.pagination import PAYROLL_PAGE_LIMIT, Page, PageRequest
from workforce_engine.services.access_policy import (
    AccessPolicy,
    Action,
    Capability,
    Identity,
    ResourceKind,
)
from workforce_engine.services.employee_service import load_employee

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = ("basic", "allowance", "deductions", "tax")
DEFAULT_PAGE_SIZE = 10


class CycleErrorCode:
    """Per-employee failure codes reported inside a cycle result."""

    DUPLICATE_EMPLOYEE = "DUPLICATE_EMPLOYEE"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    EMPLOYEE_INACTIVE = "EMPLOYEE_INACTIVE"
    INVALID_COMPENSATION = "INVALID_COMPENSATION"
    STORE_ERROR = "STORE_ERROR"


@dataclass(frozen=True)
class CycleError:
    employee_id: str
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"employeeId": self.employee_id, "code": self.code, "message": self.message}


@dataclass
class PayrollCycleResult:
    """Outcome of one cycle run: every input id lands in created or errors."""

    month: int
    year: int
    total: int
    created: list[PayrollRecord] = field(default_factory=list)
    errors: list[CycleError] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return len(self.created)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def is_partial(self) -> bool:
        return bool(self.created) and bool(self.errors)

    def summary(self) -> dict[str, int]:
        return {"total": self.total, "successful": self.successful, "failed": self.failed}


def payslip_ref(employee_id: UUID, month: int, year: int) -> str:
    return f"/payslip/{employee_id}_{month}_{year}.pdf"


def _parse_employee_id(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class PayrollService:
    """Payroll cycle runs and record maintenance.

    Operations:
    - run_payroll_cycle: create records for a roster, one transaction per employee
    - update_payroll_record: change amounts of an unpaid record, net pay recomputed
    - mark_paid: stamp paid_on, after which the record is immutable
    - delete_payroll_record: remove an unpaid record (admin)
    - get_payroll_record / list_payroll_records: policy-scoped reads

    Each operation opens its own session so that per-employee work in a cycle
    never shares a transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock,
        calculator: SalaryCalculator,
        policy: AccessPolicy,
        batch_size: int = 10,
        min_year: int = 2000,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.calculator = calculator
        self.policy = policy
        self.batch_size = max(1, batch_size)
        self.min_year = min_year

    def _require_capability(self, identity: Identity, capability: Capability) -> None:
        if not self.policy.has_capability(identity, capability):
            raise AuthorizationError()

    def _validate_period(self, month: int, year: int) -> None:
        if not 1 <= month <= 12:
            raise InvalidMonth()
        max_year = self.clock.today().year + 1
        if not self.min_year <= year <= max_year:
            raise InvalidYear(
                f"Invalid payroll year. Must be between {self.min_year} and {max_year}"
            )

    # ===== Cycle =====

    async def run_payroll_cycle(
        self,
        identity: Identity,
        employee_ids: Sequence[UUID | str],
        month: int,
        year: int,
    ) -> PayrollCycleResult:
        """Create payroll records for every listed employee for (month, year).

        Never aborts on a single employee: failures are collected as error
        entries. Raises PayrollCycleFailed only when nothing was created.
        """
        self._require_capability(identity, Capability.WRITE_PAYROLL)
        if not employee_ids:
            raise EmptyBatch()
        self._validate_period(month, year)

        result = PayrollCycleResult(month=month, year=year, total=len(employee_ids))

        candidates: list[UUID] = []
        seen: set[UUID] = set()
        for raw in employee_ids:
            employee_id = _parse_employee_id(raw)
            if employee_id is None:
                result.errors.append(
                    CycleError(str(raw), CycleErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found")
                )
            elif employee_id in seen:
                result.errors.append(
                    CycleError(
                        str(employee_id),
                        CycleErrorCode.DUPLICATE_EMPLOYEE,
                        "Employee listed more than once in this cycle",
                    )
                )
            else:
                seen.add(employee_id)
                candidates.append(employee_id)

        processed = await self._already_processed(candidates, month, year)
        remaining = []
        for employee_id in candidates:
            if employee_id in processed:
                result.errors.append(self._already_processed_error(employee_id, month, year))
            else:
                remaining.append(employee_id)

        for start in range(0, len(remaining), self.batch_size):
            chunk = remaining[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self._process_employee(employee_id, month, year) for employee_id in chunk)
            )
            for outcome in outcomes:
                if isinstance(outcome, CycleError):
                    result.errors.append(outcome)
                else:
                    result.created.append(outcome)

        logger.info(
            "payroll_cycle_complete",
            extra={
                "month": month,
                "year": year,
                "actor": identity.user_id,
                **result.summary(),
            },
        )

        if not result.created:
            raise PayrollCycleFailed(details=[error.to_dict() for error in result.errors])
        return result

    @staticmethod
    def _already_processed_error(employee_id: UUID, month: int, year: int) -> CycleError:
        return CycleError(
            str(employee_id),
            CycleErrorCode.ALREADY_PROCESSED,
            f"Payroll already processed for {month}/{year}",
        )

    async def _already_processed(self, employee_ids: list[UUID], month: int, year: int) -> set[UUID]:
        if not employee_ids:
            return set()
        async with self.session_factory() as session, unit_of_work(session):
            result = await session.execute(
                select(PayrollRecord.employee_id).where(
                    PayrollRecord.month == month,
                    PayrollRecord.year == year,
                    PayrollRecord.employee_id.in_(employee_ids),
                )
            )
            return set(result.scalars().all())

    async def _process_employee(
        self,
        employee_id: UUID,
        month: int,
        year: int,
    ) -> PayrollRecord | CycleError:
        try:
            async with self.session_factory() as session, unit_of_work(session):
                employee = await load_employee(session, employee_id)
                if employee is None:
                    return CycleError(
                        str(employee_id), CycleErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found"
                    )
                if not employee.is_active:
                    return CycleError(
                        str(employee_id), CycleErrorCode.EMPLOYEE_INACTIVE, "Employee is inactive"
                    )
                try:
                    components = self.calculator.calculate(
                        employee.base_salary, employee.allowance, employee.deductions
                    )
                except InvalidAmount as exc:
                    return CycleError(
                        str(employee_id), CycleErrorCode.INVALID_COMPENSATION, exc.message
                    )

                now = self.clock.now()
                inserted = await session.execute(
                    dialect_insert(session, PayrollRecord.__table__)
                    .values(
                        payroll_id=uuid4(),
                        employee_id=employee_id,
                        month=month,
                        year=year,
                        basic=components.basic,
                        allowance=components.allowance,
                        deductions=components.deductions,
                        tax=components.tax,
                        net_pay=components.net_pay,
                        paid_on=None,
                        payslip_ref=payslip_ref(employee_id, month, year),
                        created_at=now,
                        updated_at=now,
                    )
                    .on_conflict_do_nothing(index_elements=["employee_id", "month", "year"])
                )
                if inserted.rowcount == 0:
                    return self._already_processed_error(employee_id, month, year)

                record = await session.scalar(
                    select(PayrollRecord).where(
                        PayrollRecord.employee_id == employee_id,
                        PayrollRecord.month == month,
                        PayrollRecord.year == year,
                    )
                )
        except SQLAlchemyError:
            logger.exception(
                "payroll_employee_failed",
                extra={"employee_id": str(employee_id), "month": month, "year": year},
            )
            return CycleError(
                str(employee_id), CycleErrorCode.STORE_ERROR, "Failed to store payroll record"
            )

        logger.info(
            "payroll_record_created",
            extra={
                "payroll_id": str(record.payroll_id),
                "employee_id": str(employee_id),
                "net_pay": str(record.net_pay),
            },
        )
        return record

    # ===== Record maintenance =====

    async def _load(self, session: AsyncSession, payroll_id: UUID) -> PayrollRecord | None:
        result = await session.execute(
            select(PayrollRecord)
            .where(PayrollRecord.payroll_id == payroll_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update_payroll_record(
        self,
        identity: Identity,
        payroll_id: UUID,
        changes: dict[str, Any],
    ) -> PayrollRecord:
        """Apply amount changes to an unpaid record and recompute net pay.

        Tax keeps its stored value unless it is part of ``changes``.
        """
        unknown = set(changes) - set(AMOUNT_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        async with self.session_factory() as session, unit_of_work(session):
            record = await self._load(session, payroll_id)
            if record is None:
                raise PayrollNotFound()
            self._require_capability(identity, Capability.WRITE_PAYROLL)
            if record.is_paid:
                raise AlreadyPaid()

            current = SalaryComponents(
                basic=record.basic,
                allowance=record.allowance,
                deductions=record.deductions,
                tax=record.tax,
            )
            amounts = {
                name: SalaryCalculator.round_to_cents(Decimal(str(value)))
                for name, value in changes.items()
                if value is not None
            }
            components = current.replace(**amounts)
            SalaryCalculator.validate(components)

            updated = await session.execute(
                update(PayrollRecord)
                .where(PayrollRecord.payroll_id == payroll_id, PayrollRecord.paid_on.is_(None))
                .values(
                    basic=components.basic,
                    allowance=components.allowance,
                    deductions=components.deductions,
                    tax=components.tax,
                    net_pay=components.net_pay,
                    updated_at=self.clock.now(),
                )
                .execution_options(synchronize_session=False)
            )
            if updated.rowcount == 0:
                raise AlreadyPaid()
            record = await self._load(session, payroll_id)

        logger.info(
            "payroll_record_updated",
            extra={
                "payroll_id": str(payroll_id),
                "fields": sorted(amounts),
                "actor": identity.user_id,
            },
        )
        return record

    async def mark_paid(
        self,
        identity: Identity,
        payroll_id: UUID,
        paid_on: date | None = None,
    ) -> PayrollRecord:
        self._require_capability(identity, Capability.WRITE_PAYROLL)
        paid_on = paid_on or self.clock.today()

        async with self.session_factory() as session, unit_of_work(session):
            record = await self._load(session, payroll_id)
            if record is None:
                raise PayrollNotFound()
            updated = await session.execute(
                update(PayrollRecord)
                .where(PayrollRecord.payroll_id == payroll_id, PayrollRecord.paid_on.is_(None))
                .values(paid_on=paid_on, updated_at=self.clock.now())
                .execution_options(synchronize_session=False)
            )
            if updated.rowcount == 0:
                raise AlreadyPaid()
            record = await self._load(session, payroll_id)

        logger.info(
            "payroll_record_paid",
            extra={"payroll_id": str(payroll_id), "paid_on": paid_on.isoformat()},
        )
        return record

    async def delete_payroll_record(self, identity: Identity, payroll_id: UUID) -> None:
        self._require_capability(identity, Capability.DELETE_PAYROLL)

        async with self.session_factory() as session, unit_of_work(session):
            record = await self._load(session, payroll_id)
            if record is None:
                raise PayrollNotFound()
            deleted = await session.execute(
                delete(PayrollRecord)
                .where(PayrollRecord.payroll_id == payroll_id, PayrollRecord.paid_on.is_(None))
                .execution_options(synchronize_session=False)
            )
            if deleted.rowcount == 0:
                raise AlreadyPaid()

        logger.info(
            "payroll_record_deleted",
            extra={"payroll_id": str(payroll_id), "actor": identity.user_id},
        )

    # ===== Reads =====

    async def get_payroll_record(self, identity: Identity, payroll_id: UUID) -> PayrollRecord:
        async with self.session_factory() as session, unit_of_work(session):
            record = await self._load(session, payroll_id)
            if record is None:
                raise PayrollNotFound()
            owner = await load_employee(session, record.employee_id)
        self.policy.require(
            identity,
            Action.READ,
            ResourceKind.PAYROLL,
            owner_employee_id=record.employee_id,
            owner_department=owner.department if owner else None,
            not_found=PayrollNotFound,
        )
        return record

    async def list_payroll_records(
        self,
        identity: Identity,
        employee_id: UUID | None = None,
        month: int | None = None,
        year: int | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[PayrollRecord]:
        """Records visible to the caller, newest period first."""
        employee_id = self.policy.scope_employee_filter(
            identity, ResourceKind.PAYROLL, employee_id
        )
        if month is not None and not 1 <= month <= 12:
            raise InvalidMonth()
        page_request = PageRequest.build(
            page, limit, default=DEFAULT_PAGE_SIZE, ceiling=PAYROLL_PAGE_LIMIT
        )

        query = select(PayrollRecord)
        if employee_id is not None:
            query = query.where(PayrollRecord.employee_id == employee_id)
        if month is not None:
            query = query.where(PayrollRecord.month == month)
        if year is not None:
            query = query.where(PayrollRecord.year == year)

        async with self.session_factory() as session, unit_of_work(session):
            total = await session.scalar(
                select(func.count()).select_from(query.subquery())
            ) or 0
            result = await session.execute(
                query.order_by(
                    PayrollRecord.year.desc(),
                    PayrollRecord.month.desc(),
                    PayrollRecord.created_at.desc(),
                )
                .offset(page_request.offset)
                .limit(page_request.limit)
            )
            records = list(result.scalars().all())

        return Page(items=records, total=total, request=page_request)
