"""Attendance API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from workforce_engine.api.dependencies import AttendanceServiceDep, CurrentIdentity
from workforce_engine.api.responses import paginated, success
from workforce_engine.api.schemas import (
    AttendanceResponse,
    AttendanceStatsResponse,
    DateRangeResponse,
    EmployeeAttendanceResponse,
)
from workforce_engine.errors import EmployeeProfileNotFound
from workforce_engine.services.attendance_service import AttendanceFilters, AttendanceSummary

router = APIRouter(prefix="/attendance", tags=["attendance"])


def _summary_response(summary: AttendanceSummary, message: str) -> JSONResponse:
    return paginated(
        [AttendanceResponse.model_validate(record) for record in summary.page.items],
        summary.page,
        message,
        stats=AttendanceStatsResponse(
            total_days=summary.stats.total_days,
            completed_days=summary.stats.completed_days,
            total_worked_hours=summary.stats.total_worked_hours,
        ),
        range=DateRangeResponse(start_date=summary.range.start, end_date=summary.range.end),
    )


@router.post("/clock-in", status_code=status.HTTP_201_CREATED)
async def clock_in(identity: CurrentIdentity, service: AttendanceServiceDep) -> JSONResponse:
    """Record today's clock-in for the caller."""
    record = await service.clock_in(identity.employee_id)
    return success(
        AttendanceResponse.model_validate(record),
        "Clocked in successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/clock-out")
async def clock_out(identity: CurrentIdentity, service: AttendanceServiceDep) -> JSONResponse:
    """Record today's clock-out for the caller."""
    record = await service.clock_out(identity.employee_id)
    return success(AttendanceResponse.model_validate(record), "Clocked out successfully")


@router.get("/today")
async def today(identity: CurrentIdentity, service: AttendanceServiceDep) -> JSONResponse:
    record = await service.today(identity.employee_id)
    data = AttendanceResponse.model_validate(record) if record is not None else None
    return success(data, "Today's attendance")


@router.get("/summary")
async def summary(
    identity: CurrentIdentity,
    service: AttendanceServiceDep,
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    """The caller's own attendance history."""
    if identity.employee_id is None:
        raise EmployeeProfileNotFound()
    result = await service.summary(identity.employee_id, start_date, end_date, page, limit)
    return _summary_response(result, "Attendance summary")


@router.get("/all-employees-summary")
async def all_employees_summary(
    identity: CurrentIdentity,
    service: AttendanceServiceDep,
    employee_id: Annotated[UUID | None, Query(alias="employeeId")] = None,
    department: Annotated[str | None, Query()] = None,
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    """Attendance across employees, narrowed to what the caller may read."""
    filters = AttendanceFilters(
        employee_id=employee_id,
        department=department,
        start_date=start_date,
        end_date=end_date,
    )
    result = await service.all_employees_summary(identity, filters, page, limit)
    items = [
        EmployeeAttendanceResponse(
            **AttendanceResponse.model_validate(row.record).model_dump(),
            employee_name=row.employee_name,
            department=row.department,
        )
        for row in result.items
    ]
    return paginated(items, result, "All employees attendance summary")


@router.get("/employee/{employee_id}")
async def employee_summary(
    identity: CurrentIdentity,
    service: AttendanceServiceDep,
    employee_id: Annotated[UUID, Path()],
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    result = await service.employee_summary(
        identity, employee_id, start_date, end_date, page, limit
    )
    return _summary_response(result, "Employee attendance summary")
