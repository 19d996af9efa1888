"""FastAPI application entry point."""
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import genres, health, recommendations, users
from core.config import get_settings
from core.rate_limiter import RateLimitExceededError
from core.redis import RedisClient, get_redis_client, set_redis_client
from services.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    RecommendationsError,
    UnauthenticatedError,
    UnauthorizedError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[RecommendationsError], int] = {
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    UserNotFoundError: status.HTTP_403_FORBIDDEN,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
}


def status_for_error(exc: RecommendationsError) -> int:
    """HTTP status for a service error, walking the class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def recommendations_error_handler(
    request: Request, exc: RecommendationsError,
) -> JSONResponse:
    """Render service errors as ``{"detail": ..., "code": ...}``."""
    status_code = status_for_error(exc)
    logger.info(
        "request_failed",
        extra={"path": request.url.path, "code": exc.code, "status": status_code},
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceededError,  # noqa: ARG001
) -> JSONResponse:
    """429 with Retry-After and X-RateLimit-* headers."""
    result = exc.result
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": "Rate limit exceeded. Please try again later.", "code": "RATE_LIMITED"},
        headers={
            "Retry-After": str(result.retry_after),
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset),
        },
    )


async def rate_limit_headers_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Copy rate limit info stored by the dependency onto the response."""
    response = await call_next(request)
    info = getattr(request.state, "rate_limit_info", None)
    if info:
        response.headers["X-RateLimit-Limit"] = str(info["limit"])
        response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
        response.headers["X-RateLimit-Reset"] = str(info["reset"])
    return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: ARG001
    """Configure logging and connect Redis for the lifetime of the app."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    redis_client = RedisClient(settings.redis_url, enabled=settings.redis_enabled)
    await redis_client.connect()
    set_redis_client(redis_client)
    try:
        yield
    finally:
        client = get_redis_client()
        if client is not None:
            await client.close()
        set_redis_client(None)


def create_app() -> FastAPI:
    """Build the application with routers, error handlers and middleware."""
    settings = get_settings()
    application = FastAPI(
        title="Recommendations API",
        description="A public recommendation feed with owner and admin moderation.",
        version="0.1.0",
        lifespan=lifespan,
    )
    if settings.cors_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    application.middleware("http")(rate_limit_headers_middleware)
    application.add_exception_handler(RecommendationsError, recommendations_error_handler)
    application.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_handler)

    application.include_router(health.router)
    application.include_router(recommendations.router)
    application.include_router(users.router)
    application.include_router(genres.router)
    return application


app = create_app()
