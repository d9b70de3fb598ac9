"""API routes."""

from workforce_engine.api.routes.attendance import router as attendance_router
from workforce_engine.api.routes.employees import router as employees_router
from workforce_engine.api.routes.health import router as health_router
from workforce_engine.api.routes.leave import router as leave_router
from workforce_engine.api.routes.payroll import router as payroll_router
from workforce_engine.api.routes.performance import router as performance_router

__all__ = [
    "attendance_router",
    "employees_router",
    "health_router",
    "leave_router",
    "payroll_router",
    "performance_router",
]
