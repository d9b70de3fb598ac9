"""FastAPI application factory."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workforce_engine.api.responses import failure
from workforce_engine.api.routes import (
    attendance_router,
    employees_router,
    health_router,
    leave_router,
    payroll_router,
    performance_router,
)
from workforce_engine.config import get_settings
from workforce_engine.database import create_schema, dispose_db, init_db
from workforce_engine.errors import ErrorCategory, WorkforceError
from workforce_engine.log_config import setup_logging

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorCategory.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)
    engine, _ = init_db()
    await create_schema(engine)
    logger.info("startup", extra={"version": settings.engine_version})
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Workforce Engine API",
        description="Attendance, leave and payroll processing",
        version=settings.engine_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            logger.info(
                "request_complete",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                    "actor": request.headers.get("X-User-Id"),
                },
            )

    @app.exception_handler(WorkforceError)
    async def workforce_error_handler(request: Request, exc: WorkforceError) -> JSONResponse:
        """Map engine error categories to status codes."""
        return failure(
            STATUS_BY_CATEGORY[exc.category],
            exc.code,
            exc.message,
            errors=exc.details,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"][1:]) or str(error["loc"][0]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return failure(
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            "Request validation failed",
            errors=errors,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unhandled_error",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
            },
        )
        return failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "An unexpected error occurred",
        )

    app.include_router(health_router)
    app.include_router(attendance_router, prefix=settings.api_prefix)
    app.include_router(leave_router, prefix=settings.api_prefix)
    app.include_router(payroll_router, prefix=settings.api_prefix)
    app.include_router(employees_router, prefix=settings.api_prefix)
    app.include_router(performance_router, prefix=settings.api_prefix)

    return app


# Default app instance for uvicorn
app = create_app()
