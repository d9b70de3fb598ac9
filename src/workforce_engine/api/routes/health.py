"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.api.dependencies import DbSession
from workforce_engine.api.schemas import CamelModel
from workforce_engine.config import get_settings
from workforce_engine.models import Base

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    database: str
    missing_tables: list[str]
    version: str


async def _missing_tables(db: AsyncSession) -> list[str] | None:
    """Tables the models expect but the database lacks; None if unreachable."""
    try:
        existing = await db.run_sync(
            lambda session: set(inspect(session.connection()).get_table_names())
        )
        await db.commit()
    except SQLAlchemyError:
        logger.warning("health_database_unreachable", exc_info=True)
        return None
    return sorted(set(Base.metadata.tables) - existing)


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """API and database health; degraded when the schema is incomplete."""
    missing = await _missing_tables(db)
    if missing is None:
        db_status = "unhealthy"
    elif missing:
        db_status = "schema_incomplete"
    else:
        db_status = "healthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        missing_tables=missing or [],
        version=get_settings().engine_version,
    )


@router.get("/ready")
async def readiness_check(db: DbSession) -> JSONResponse:
    """Ready once the database answers with every table in place."""
    missing = await _missing_tables(db)
    if missing is None or missing:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready"},
        )
    return JSONResponse(content={"status": "ready"})


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
