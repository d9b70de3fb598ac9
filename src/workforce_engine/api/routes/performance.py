"""Performance goal endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from workforce_engine.api.dependencies import CurrentIdentity, PerformanceServiceDep
from workforce_engine.api.responses import paginated, success
from workforce_engine.api.schemas import GoalResponse, GoalsCreate, GoalStatusUpdate
from workforce_engine.services.performance_service import NewGoal

router = APIRouter(prefix="/performance", tags=["performance"])


@router.post("/goals", status_code=status.HTTP_201_CREATED)
async def set_goals(
    identity: CurrentIdentity,
    service: PerformanceServiceDep,
    payload: GoalsCreate,
) -> JSONResponse:
    """Set one or more goals for an employee."""
    goals = await service.set_goals(
        identity,
        payload.employee_id,
        [
            NewGoal(
                title=goal.title,
                description=goal.description,
                target_date=goal.target_date,
                status=goal.status,
            )
            for goal in payload.goals
        ],
    )
    return success(
        [GoalResponse.model_validate(goal) for goal in goals],
        "Goals set successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/goal/status/{employee_id}/{goal_id}")
async def update_goal_status(
    identity: CurrentIdentity,
    service: PerformanceServiceDep,
    employee_id: Annotated[UUID, Path()],
    goal_id: Annotated[UUID, Path()],
    payload: GoalStatusUpdate,
) -> JSONResponse:
    goal = await service.update_goal_status(identity, employee_id, goal_id, payload.status)
    return success(GoalResponse.model_validate(goal), "Goal status updated successfully")


@router.get("/goals")
async def list_goals(
    identity: CurrentIdentity,
    service: PerformanceServiceDep,
    employee_id: Annotated[UUID | None, Query(alias="employeeId")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    page: Annotated[int | None, Query()] = None,
    limit: Annotated[int | None, Query()] = None,
) -> JSONResponse:
    result = await service.list_goals(identity, employee_id, status_filter, page, limit)
    return paginated(
        [GoalResponse.model_validate(goal) for goal in result.items],
        result,
        "Performance goals",
    )
