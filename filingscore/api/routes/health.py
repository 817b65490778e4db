"""Health check endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from filingscore.core.config import settings
from filingscore.core.logging import get_logger
from filingscore.database.connection import db_healthcheck
from filingscore.repositories import Repositories

from ..dependencies import get_repositories
from ..schemas import BatchHealthResponse, HealthResponse


router = APIRouter(prefix="/health")

logger = get_logger("api.health")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the API and its database. Returns 503 when degraded.",
    responses={503: {"model": HealthResponse}},
)
async def health_check() -> JSONResponse:
    checks = {"database": await db_healthcheck()}
    healthy = all(checks.values())

    body = HealthResponse(
        status="ok" if healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        timestamp=datetime.now(UTC),
        checks=checks,
    )
    return JSONResponse(
        status_code=200 if healthy else 503,
        content=body.model_dump(mode="json"),
    )


@router.get(
    "/batch",
    response_model=BatchHealthResponse,
    summary="Batch run health",
    description="The 10 most recent batch runs and the last success per batch type.",
)
async def batch_health(
    repos: Repositories = Depends(get_repositories),
) -> BatchHealthResponse:
    recent = await repos.batch_runs.recent(limit=10)
    last_success = await repos.batch_runs.last_success_by_type()
    return BatchHealthResponse(
        recent_runs=recent,
        last_success=last_success,
        timestamp=datetime.now(UTC),
    )
