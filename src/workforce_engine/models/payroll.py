"""Monthly payroll record model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.models.base import Base, TimestampMixin


class PayrollRecord(Base, TimestampMixin):
    """Salary components for one employee and pay period.

    Net pay is always basic + allowance - deductions - tax. Once ``paid_on``
    is set the record is immutable.
    """

    __tablename__ = "payroll_record"

    payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    basic: Mapped[Decimal] = mapped_column(nullable=False)
    allowance: Mapped[Decimal] = mapped_column(nullable=False)
    deductions: Mapped[Decimal] = mapped_column(nullable=False)
    tax: Mapped[Decimal] = mapped_column(nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(nullable=False)
    paid_on: Mapped[date | None] = mapped_column(nullable=True)
    payslip_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "month", "year", name="payroll_employee_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_month_check"),
    )

    @property
    def is_paid(self) -> bool:
        return self.paid_on is not None
