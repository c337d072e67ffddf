from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from noticeguard import __version__
from noticeguard.api.deps import get_guard
from noticeguard.bootstrap import NoticeGuard

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str = __version__


class ReadinessResponse(BaseModel):
    status: str
    database: str
    schema_version: str
    needs_migration: bool


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy")


@router.get("/ready", response_model=ReadinessResponse, status_code=status.HTTP_200_OK)
def readiness_check(
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> ReadinessResponse:
    """Readiness check with database connectivity and schema state."""
    db_status = "unknown"

    try:
        with guard.db_engine.connect() as conn:
            if conn.execute(text("SELECT 1")).scalar() == 1:
                db_status = "connected"
    except SQLAlchemyError:
        db_status = "disconnected"

    needs_migration = guard.migrator.needs_migration()
    ready = db_status == "connected" and not needs_migration

    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        database=db_status,
        schema_version=guard.migrator.schema_version,
        needs_migration=needs_migration,
    )
