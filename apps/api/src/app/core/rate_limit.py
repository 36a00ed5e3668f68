"""
Rate Limiting Module

Sliding-window rate limiting keyed by an arbitrary identifier string
(e.g. "login:student@example.com" or "ip:10.0.0.1:/api/v1/enrollment").

The timestamps live in a swappable store:
- InMemoryRateLimitStore: process local, the default
- RedisRateLimitStore: sorted sets with a key TTL, shared between workers

SECURITY: Rate limiting guards against transient abuse of:
- Password login (brute force)
- OTP request/resend (email spam)
- OTP verification (code guessing)
It is not a hard security boundary; in-memory state is lost on restart.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, Protocol

from fastapi import Request
from redis.asyncio import Redis

from app.core.exceptions import RateLimitExceededError
from app.core.locks import KeyedLock

logger = logging.getLogger(__name__)

# Identifiers with no request in this period are purged by the sweep
RETENTION_SECONDS = 24 * 60 * 60


class RateLimitStore(Protocol):
    """Storage for per-identifier request timestamps."""

    async def get(self, key: str) -> list[float]: ...

    async def set(self, key: str, timestamps: list[float], window_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def sweep(self, older_than: float) -> int: ...

    async def size(self) -> int: ...


class InMemoryRateLimitStore:
    """
    Process-local timestamp store.

    Note: This doesn't work across multiple server instances.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[float]] = {}

    async def get(self, key: str) -> list[float]:
        return list(self._entries.get(key, []))

    async def set(self, key: str, timestamps: list[float], window_seconds: int) -> None:
        self._entries[key] = list(timestamps)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def sweep(self, older_than: float) -> int:
        """Drop identifiers whose timestamps are all older than the cutoff."""
        removed = 0
        for key in list(self._entries):
            recent = [ts for ts in self._entries[key] if ts > older_than]
            if recent:
                self._entries[key] = recent
            else:
                del self._entries[key]
                removed += 1
        return removed

    async def size(self) -> int:
        return len(self._entries)


class RedisRateLimitStore:
    """
    Redis backed timestamp store using one sorted set per identifier.

    Keys expire with the window, so sweep() has nothing to do.
    """

    def __init__(self, client: Redis, prefix: str = "rate_limit:") -> None:
        self._client = client
        self._prefix = prefix

    async def get(self, key: str) -> list[float]:
        members = await self._client.zrange(self._prefix + key, 0, -1, withscores=True)
        return [score for _, score in members]

    async def set(self, key: str, timestamps: list[float], window_seconds: int) -> None:
        redis_key = self._prefix + key

        # Use a pipeline for atomic operations
        pipe = self._client.pipeline()
        pipe.delete(redis_key)
        if timestamps:
            pipe.zadd(redis_key, {f"{ts:.6f}:{i}": ts for i, ts in enumerate(timestamps)})
            pipe.expire(redis_key, window_seconds)
        await pipe.execute()

    async def delete(self, key: str) -> None:
        await self._client.delete(self._prefix + key)

    async def sweep(self, older_than: float) -> int:
        return 0

    async def size(self) -> int:
        count = 0
        async for _ in self._client.scan_iter(match=f"{self._prefix}*"):
            count += 1
        return count


class RateLimiter:
    """
    Sliding-window rate limiter.

    Mutation for a single identifier is serialized so concurrent requests
    cannot both slip under the limit.
    """

    def __init__(
        self,
        store: RateLimitStore,
        clock: Callable[[], float] = time.time,
        retention_seconds: int = RETENTION_SECONDS,
    ) -> None:
        self.store = store
        self._clock = clock
        self._retention_seconds = retention_seconds
        self._locks = KeyedLock()

    async def allow(self, identifier: str, limit: int, window_seconds: int) -> bool:
        """
        Record a request for the identifier if it is within the limit.

        Args:
            identifier: Unique key for this rate limit
            limit: Maximum requests allowed in the window
            window_seconds: Sliding window length in seconds

        Returns:
            True if the request is allowed, False if the limit is reached.
            A rejected request is not recorded.
        """
        async with self._locks.hold(identifier):
            now = self._clock()
            window_start = now - window_seconds

            requests = [ts for ts in await self.store.get(identifier) if ts > window_start]

            if len(requests) >= limit:
                await self.store.set(identifier, requests, window_seconds)
                return False

            requests.append(now)
            await self.store.set(identifier, requests, window_seconds)
            return True

    async def sweep(self) -> int:
        """Purge identifiers with no request in the retention period."""
        removed = await self.store.sweep(self._clock() - self._retention_seconds)
        if removed:
            logger.debug(f"Rate limit sweep removed {removed} identifiers")
        return removed

    async def size(self) -> int:
        return await self.store.size()


# Process-wide limiter, replaced at startup by init_rate_limiter()
_rate_limiter: RateLimiter | None = None


def init_rate_limiter(store: RateLimitStore) -> RateLimiter:
    """Create the process-wide rate limiter on the given store."""
    global _rate_limiter
    _rate_limiter = RateLimiter(store)
    return _rate_limiter


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide rate limiter, creating an in-memory one if needed."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter(InMemoryRateLimitStore())
    return _rate_limiter


def rate_limit(
    limit: int = 10,
    window_seconds: int = 60,
    key_func: Callable[[Request], str] | None = None,
):
    """
    Rate limiting decorator for FastAPI endpoints.

    Usage:
        @router.get("/lookup")
        @rate_limit(limit=20, window_seconds=60)
        async def lookup(request: Request, ...):
            ...

    Args:
        limit: Maximum requests allowed in the window (default: 10)
        window_seconds: Time window in seconds (default: 60)
        key_func: Optional function to generate rate limit key from request.
                  Default uses client IP + endpoint path.

    Raises:
        RateLimitExceededError: When rate limit is exceeded (HTTP 429)
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            # Find request object in args or kwargs
            request: Request | None = None
            for arg in args:
                if isinstance(arg, Request):
                    request = arg
                    break
            if not request:
                request = kwargs.get("request")

            if not request:
                logger.warning(
                    f"Rate limit decorator on {func.__name__} couldn't find Request object"
                )
                return await func(*args, **kwargs)

            if key_func:
                key = key_func(request)
            else:
                client_ip = request.client.host if request.client else "unknown"
                key = f"ip:{client_ip}:{request.url.path}"

            allowed = await get_rate_limiter().allow(key, limit, window_seconds)

            if not allowed:
                logger.warning(f"Rate limit exceeded for {key}: {limit}/{window_seconds}s")
                raise RateLimitExceededError("Too many requests. Please try again later.")

            return await func(*args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "RateLimitStore",
    "InMemoryRateLimitStore",
    "RedisRateLimitStore",
    "RateLimiter",
    "init_rate_limiter",
    "get_rate_limiter",
    "rate_limit",
]
