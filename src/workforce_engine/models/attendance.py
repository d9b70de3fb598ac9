"""Daily attendance model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from workforce_engine.models.base import Base, TimestampMixin


class AttendanceState(str, Enum):
    """Per-day attendance states."""

    NOT_CLOCKED_IN = "not_clocked_in"
    CLOCKED_IN = "clocked_in"
    CLOCKED_OUT = "clocked_out"


class AttendanceRecord(Base, TimestampMixin):
    """One row per (employee, work_date)."""

    __tablename__ = "attendance_record"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(nullable=False)
    clock_in_at: Mapped[datetime | None] = mapped_column(nullable=True)
    clock_out_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="attendance_employee_date_unique"),
    )

    @property
    def state(self) -> AttendanceState:
        if self.clock_in_at is None:
            return AttendanceState.NOT_CLOCKED_IN
        if self.clock_out_at is None:
            return AttendanceState.CLOCKED_IN
        return AttendanceState.CLOCKED_OUT

    @property
    def worked_hours(self) -> Decimal | None:
        """Hours between clock-in and clock-out, or None while open."""
        if self.clock_in_at is None or self.clock_out_at is None:
            return None
        seconds = Decimal(str((self.clock_out_at - self.clock_in_at).total_seconds()))
        return (seconds / Decimal("3600")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
