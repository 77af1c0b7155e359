"""Root API router: health probes and the auth API."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from flowgrid_auth.api.dependencies import DBSession
from flowgrid_auth.core.auth.routes import router as auth_router
from flowgrid_auth.core.cache import ping_redis
from flowgrid_auth.core.rate_limit import general_rate_limit
from flowgrid_auth.modules import discover_modules


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    checks: dict[str, str]


api_router = APIRouter()

health_router = APIRouter(tags=["health"])


@health_router.get(
    "/health/live",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Returns 200 while the process is running.",
)
async def liveness() -> HealthResponse:
    """Liveness probe endpoint."""
    return HealthResponse(status="alive")


@health_router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Checks database and Redis connectivity.",
)
async def readiness(db: DBSession) -> JSONResponse:
    """Readiness probe endpoint."""
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = str(e)

    # Rate limiting fails open, so a Redis outage degrades but does not block
    try:
        checks["redis"] = "ok" if await ping_redis() else "no response"
    except (RedisError, OSError) as e:
        checks["redis"] = str(e)

    all_ok = all(v == "ok" for v in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_ok else "degraded",
            "checks": checks,
        },
    )


# Every auth endpoint shares the general per-IP ceiling on top of its own
auth_api = APIRouter(prefix="/api/auth", dependencies=[Depends(general_rate_limit)])
auth_api.include_router(auth_router)

for module_router in discover_modules():
    auth_api.include_router(module_router)

api_router.include_router(health_router)
api_router.include_router(auth_api)
