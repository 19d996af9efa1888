"""Health endpoint for load balancers and deploy checks."""
import logging
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from core.redis import get_redis_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Overall status plus the state of each backing service."""

    status: Literal["healthy", "degraded"]
    database: Literal["healthy", "unhealthy"]
    redis: Literal["connected", "unavailable"]


async def database_status(db: AsyncSession) -> Literal["healthy", "unhealthy"]:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("health_database_unreachable")
        return "unhealthy"
    return "healthy"


async def redis_status() -> Literal["connected", "unavailable"]:
    client = get_redis_client()
    if client is not None and await client.ping():
        return "connected"
    return "unavailable"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_async_session)) -> HealthResponse:
    """
    Report database and Redis reachability.

    Only the database decides overall health. Without Redis, writes are
    simply not rate limited.
    """
    database = await database_status(db)
    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        database=database,
        redis=await redis_status(),
    )
