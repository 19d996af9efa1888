"""FastAPI dependencies for injection."""
from fastapi import Depends, Request

from core.auth import get_optional_identity
from core.config import Settings, get_settings
from core.rate_limiter import (
    RateLimitExceededError,
    RateLimitResult,
    is_write_request,
    rate_limiter,
)
from db.session import get_async_session
from schemas.identity import Identity


async def check_write_rate_limit(
    request: Request,
    identity: Identity | None = Depends(get_optional_identity),
    settings: Settings = Depends(get_settings),
) -> RateLimitResult | None:
    """
    Dependency that limits write requests per caller.

    Anonymous callers are not limited here; the service layer rejects their
    writes anyway. The result is stored on request.state so the middleware in
    ``api.main`` can add X-RateLimit-* headers.
    """
    if identity is None or not is_write_request(request.method):
        return None

    result = await rate_limiter.check(identity.subject, settings.rate_limit_writes_per_minute)
    if not result.allowed:
        raise RateLimitExceededError(result)

    request.state.rate_limit_info = {
        "limit": result.limit,
        "remaining": result.remaining,
        "reset": result.reset,
    }
    return result


__all__ = [
    "check_write_rate_limit",
    "get_async_session",
    "get_optional_identity",
    "get_settings",
]
