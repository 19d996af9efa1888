"""Per-caller rate limiting for write endpoints, backed by Redis."""
import logging
import time
import uuid
from dataclasses import dataclass

from core.redis import get_redis_client

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check, with the values needed for headers."""

    allowed: bool
    limit: int  # Max requests in current window
    remaining: int  # Requests remaining in current window
    reset: int  # Unix timestamp when window resets
    retry_after: int  # Seconds until retry allowed (0 if allowed)


class RateLimitExceededError(Exception):
    """Raised when a caller exceeds the write limit."""

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__("Rate limit exceeded")


def is_write_request(method: str) -> bool:
    return method.upper() in WRITE_METHODS


class WriteRateLimiter:
    """Sliding-window limit of write requests per identity subject."""

    async def check(self, subject: str, limit: int) -> RateLimitResult:
        """
        Record one write by ``subject`` and report whether it is allowed.

        Fails open (allows the request) when Redis is unavailable.
        """
        permissive = RateLimitResult(
            allowed=True, limit=limit, remaining=limit, reset=0, retry_after=0,
        )
        redis_client = get_redis_client()
        if redis_client is None or not redis_client.is_connected:
            logger.warning("redis_unavailable", extra={"operation": "rate_limit"})
            return permissive

        now = int(time.time())
        result = await redis_client.record_write(
            f"rate:{subject}:write:min", now, WINDOW_SECONDS, limit, uuid.uuid4().hex,
        )
        if result is None:
            return permissive

        allowed, remaining, retry_after = result
        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                extra={"subject": subject, "limit": limit, "retry_after": retry_after},
            )
        return RateLimitResult(
            allowed=bool(allowed),
            limit=limit,
            remaining=max(0, remaining),
            reset=now + WINDOW_SECONDS,
            retry_after=max(0, retry_after) if not allowed else 0,
        )


rate_limiter = WriteRateLimiter()
