"""Employee profile API endpoints."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from workforce_engine.api.dependencies import CurrentIdentity, EmployeeServiceDep, PolicyDep
from workforce_engine.api.responses import paginated, success
from workforce_engine.api.schemas import (
    COMPENSATION_KEYS,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
)
from workforce_engine.models import Employee
from workforce_engine.services.access_policy import AccessPolicy, Identity
from workforce_engine.services.employee_service import EmployeeFilters, NewEmployee

router = APIRouter(prefix="/employees", tags=["employees"])


def employee_payload(employee: Employee, identity: Identity, policy: AccessPolicy) -> dict[str, Any]:
    """Employee JSON with compensation dropped for viewers who may not see it."""
    data = EmployeeResponse.model_validate(employee).model_dump(mode="json", by_alias=True)
    if not policy.can_view_salary(identity, employee.employee_id):
        for key in COMPENSATION_KEYS:
            data.pop(key, None)
    return data


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_employee(
    identity: CurrentIdentity,
    service: EmployeeServiceDep,
    policy: PolicyDep,
    payload: EmployeeCreate,
) -> JSONResponse:
    employee = await service.create_employee(identity, NewEmployee(**payload.model_dump()))
    return success(
        employee_payload(employee, identity, policy),
        "Employee profile created",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("")
async def list_employees(
    identity: CurrentIdentity,
    service: EmployeeServiceDep,
    policy: PolicyDep,
    department: Annotated[str | None, Query()] = None,
    title: Annotated[str | None, Query()] = None,
    is_active: Annotated[bool | None, Query(alias="isActive")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    filters = EmployeeFilters(department=department, title=title, is_active=is_active)
    result = await service.list_employees(identity, filters, page, limit)
    return paginated(
        [employee_payload(employee, identity, policy) for employee in result.items],
        result,
        "Employees",
    )


@router.get("/me")
async def my_profile(
    identity: CurrentIdentity,
    service: EmployeeServiceDep,
    policy: PolicyDep,
) -> JSONResponse:
    employee = await service.get_by_user(identity.user_id)
    return success(employee_payload(employee, identity, policy), "Employee profile")


@router.get("/{employee_id}")
async def get_employee(
    identity: CurrentIdentity,
    service: EmployeeServiceDep,
    policy: PolicyDep,
    employee_id: Annotated[UUID, Path()],
) -> JSONResponse:
    employee = await service.get_employee(identity, employee_id)
    return success(employee_payload(employee, identity, policy), "Employee profile")


@router.put("/{employee_id}")
async def update_employee(
    identity: CurrentIdentity,
    service: EmployeeServiceDep,
    policy: PolicyDep,
    employee_id: Annotated[UUID, Path()],
    payload: EmployeeUpdate,
) -> JSONResponse:
    changes = payload.model_dump(exclude_unset=True)
    employee = await service.update_employee(identity, employee_id, changes)
    return success(employee_payload(employee, identity, policy), "Employee profile updated")


@router.delete("/{employee_id}")
async def deactivate_employee(
    identity: CurrentIdentity,
    service: EmployeeServiceDep,
    policy: PolicyDep,
    employee_id: Annotated[UUID, Path()],
) -> JSONResponse:
    """Soft delete: the profile is kept but marked inactive."""
    employee = await service.deactivate_employee(identity, employee_id)
    return success(employee_payload(employee, identity, policy), "Employee profile deactivated")
