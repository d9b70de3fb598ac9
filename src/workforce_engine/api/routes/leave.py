"""Leave API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from workforce_engine.api.dependencies import CurrentIdentity, LeaveServiceDep
from workforce_engine.api.responses import paginated, success
from workforce_engine.api.schemas import LeaveCreate, LeaveDecision, LeaveResponse
from workforce_engine.services.leave_service import LeaveFilters

router = APIRouter(prefix="/leave", tags=["leave"])


@router.post("/request", status_code=status.HTTP_201_CREATED)
async def request_leave(
    identity: CurrentIdentity,
    service: LeaveServiceDep,
    payload: LeaveCreate,
) -> JSONResponse:
    """Submit a Pending leave request for the caller."""
    leave = await service.request_leave(
        identity.employee_id,
        payload.start_date,
        payload.end_date,
        payload.reason,
        payload.leave_type,
    )
    return success(
        LeaveResponse.model_validate(leave),
        "Leave request submitted",
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/approve/{leave_id}")
async def decide_leave(
    identity: CurrentIdentity,
    service: LeaveServiceDep,
    leave_id: Annotated[UUID, Path()],
    payload: LeaveDecision,
) -> JSONResponse:
    """Approve or reject a Pending request."""
    leave = await service.decide_leave(
        identity, leave_id, payload.status, payload.rejection_reason
    )
    return success(LeaveResponse.model_validate(leave), f"Leave request {leave.status.lower()}")


@router.delete("/cancel/{leave_id}")
async def cancel_leave(
    identity: CurrentIdentity,
    service: LeaveServiceDep,
    leave_id: Annotated[UUID, Path()],
) -> JSONResponse:
    leave = await service.cancel_leave(leave_id, identity.employee_id)
    return success(LeaveResponse.model_validate(leave), "Leave request cancelled")


@router.get("/my")
async def my_leaves(
    identity: CurrentIdentity,
    service: LeaveServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    result = await service.my_leaves(identity, status_filter, page, limit)
    return paginated(
        [LeaveResponse.model_validate(leave) for leave in result.items],
        result,
        "Leave requests",
    )


@router.get("/get-all-leaves")
async def all_leaves(
    identity: CurrentIdentity,
    service: LeaveServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    employee_id: Annotated[UUID | None, Query(alias="employeeId")] = None,
    department: Annotated[str | None, Query()] = None,
    leave_type: Annotated[str | None, Query(alias="leaveType")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    filters = LeaveFilters(
        status=status_filter,
        employee_id=employee_id,
        department=department,
        leave_type=leave_type,
    )
    result = await service.list_leaves(identity, filters, page, limit)
    return paginated(
        [LeaveResponse.model_validate(leave) for leave in result.items],
        result,
        "Leave requests",
    )


@router.get("/{leave_id}")
async def get_leave(
    identity: CurrentIdentity,
    service: LeaveServiceDep,
    leave_id: Annotated[UUID, Path()],
) -> JSONResponse:
    leave = await service.get_leave(identity, leave_id)
    return success(LeaveResponse.model_validate(leave), "Leave request")
