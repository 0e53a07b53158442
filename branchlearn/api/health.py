"""
Health endpoint: database and Redis checks, 200 when both answer, 503 otherwise.
"""
import asyncio
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from branchlearn.api.deps import get_container
from branchlearn.core.container import ServiceContainer
from branchlearn.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


async def _dependency_status(check: Callable[[], Awaitable[object]], timeout: float) -> str:
    try:
        await asyncio.wait_for(check(), timeout=timeout)
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health_check(container: ServiceContainer = Depends(get_container)):
    settings = container.settings

    async def database() -> None:
        async with container.database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def redis() -> None:
        await container.redis.ping()

    deps = {
        "database": await _dependency_status(database, settings.HEALTH_CHECK_TIMEOUT),
        "redis": await _dependency_status(redis, settings.HEALTH_CHECK_TIMEOUT),
    }
    healthy = all(v == "ok" for v in deps.values())

    body = HealthResponse(
        status="healthy" if healthy else "degraded",
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        dependencies=deps,
    )
    return JSONResponse(content=body.model_dump(), status_code=200 if healthy else 503)
