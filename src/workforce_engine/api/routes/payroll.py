"""Payroll API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from workforce_engine.api.dependencies import CurrentIdentity, PayrollServiceDep
from workforce_engine.api.responses import paginated, success
from workforce_engine.api.schemas import (
    MarkPaidRequest,
    PayrollCycleRequest,
    PayrollResponse,
    PayrollUpdate,
)

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post("/run-cycle", status_code=status.HTTP_201_CREATED)
async def run_payroll_cycle(
    identity: CurrentIdentity,
    service: PayrollServiceDep,
    payload: PayrollCycleRequest,
) -> JSONResponse:
    """Create payroll records for a roster; 207 when some employees failed."""
    result = await service.run_payroll_cycle(
        identity, payload.employees, payload.month, payload.year
    )
    status_code = status.HTTP_207_MULTI_STATUS if result.errors else status.HTTP_201_CREATED
    message = (
        f"Payroll cycle processed with {result.failed} error(s)"
        if result.errors
        else "Payroll cycle processed successfully"
    )
    return success(
        {
            "created": [PayrollResponse.model_validate(record) for record in result.created],
            "errors": [error.to_dict() for error in result.errors],
            "summary": result.summary(),
        },
        message,
        status_code=status_code,
    )


@router.get("")
async def list_payroll_records(
    identity: CurrentIdentity,
    service: PayrollServiceDep,
    employee_id: Annotated[UUID | None, Query(alias="employeeId")] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
    year: Annotated[int | None, Query(ge=1, le=9999)] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    result = await service.list_payroll_records(identity, employee_id, month, year, page, limit)
    return paginated(
        [PayrollResponse.model_validate(record) for record in result.items],
        result,
        "Payroll records",
    )


@router.get("/{payroll_id}")
async def get_payroll_record(
    identity: CurrentIdentity,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
) -> JSONResponse:
    record = await service.get_payroll_record(identity, payroll_id)
    return success(PayrollResponse.model_validate(record), "Payroll record")


@router.put("/{payroll_id}")
async def update_payroll_record(
    identity: CurrentIdentity,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
    payload: PayrollUpdate,
) -> JSONResponse:
    """Change amounts of an unpaid record; net pay is recomputed."""
    changes = payload.model_dump(exclude_none=True)
    record = await service.update_payroll_record(identity, payroll_id, changes)
    return success(PayrollResponse.model_validate(record), "Payroll record updated")


@router.post("/{payroll_id}/mark-paid")
async def mark_paid(
    identity: CurrentIdentity,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
    payload: MarkPaidRequest | None = None,
) -> JSONResponse:
    paid_on = payload.paid_on if payload is not None else None
    record = await service.mark_paid(identity, payroll_id, paid_on)
    return success(PayrollResponse.model_validate(record), "Payroll record marked as paid")


@router.delete("/{payroll_id}")
async def delete_payroll_record(
    identity: CurrentIdentity,
    service: PayrollServiceDep,
    payroll_id: Annotated[UUID, Path()],
) -> JSONResponse:
    await service.delete_payroll_record(identity, payroll_id)
    return success(None, "Payroll record deleted")
