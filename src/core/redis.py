"""
Redis connection used by the write rate limiter.

Redis is optional. When it is disabled or unreachable the client stays
disconnected, every call degrades to a no-op and callers fail open.
"""
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# KEYS[1]: sorted set of one subject's write timestamps.
# ARGV: now, window seconds, limit, unique member suffix.
# Returns {allowed (1/0), remaining, retry_after seconds}.
WRITE_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local used = redis.call('ZCARD', key)

if used >= limit then
    local first = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
    local wait = 1
    if first[2] then
        wait = math.max(1, math.ceil(tonumber(first[2]) + window - now))
    end
    return {0, 0, wait}
end

redis.call('ZADD', key, now, now .. '-' .. ARGV[4])
redis.call('EXPIRE', key, window)
return {1, limit - used - 1, 0}
"""


class RedisClient:
    """
    Thin wrapper around ``redis.asyncio.Redis``.

    Connection problems are logged, never raised: ``connect`` leaves the
    client disconnected and the call methods return None or False.
    """

    def __init__(self, url: str, enabled: bool = True) -> None:
        self._url = url
        self._enabled = enabled
        self._client: Redis | None = None
        self._write_window_sha: str | None = None

    async def connect(self) -> None:
        """Connect and register the write-window script."""
        if not self._enabled:
            logger.info("Redis disabled by configuration; write rate limiting is off")
            return
        client = Redis.from_url(self._url, max_connections=10)
        try:
            await client.ping()
            self._write_window_sha = await client.script_load(WRITE_WINDOW_SCRIPT)
        except RedisError as e:
            logger.warning("Redis unreachable at start-up, running without it: %s", e)
            await client.aclose()
            return
        self._client = client
        logger.info("Redis connected")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._write_window_sha = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def record_write(
        self, key: str, now: int, window: int, limit: int, member: str,
    ) -> tuple[int, int, int] | None:
        """
        Count one write against ``key`` using the sliding-window script.

        Returns ``(allowed, remaining, retry_after)``, or None when Redis is
        unavailable (including a flushed script cache).
        """
        if self._client is None or self._write_window_sha is None:
            return None
        try:
            allowed, remaining, retry_after = await self._client.evalsha(
                self._write_window_sha, 1, key, now, window, limit, member,
            )
        except RedisError as e:
            logger.warning("Redis write-window script failed: %s", e)
            return None
        return int(allowed), int(remaining), int(retry_after)


class _RedisState:
    """Holder for the process-wide client set during app start-up."""

    client: RedisClient | None = None


_state = _RedisState()


def get_redis_client() -> RedisClient | None:
    return _state.client


def set_redis_client(client: RedisClient | None) -> None:
    _state.client = client
