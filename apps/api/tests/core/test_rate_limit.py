"""
Unit tests for the sliding-window rate limiter.
"""

import asyncio

import pytest
from starlette.requests import Request

from app.core.rate_limit import InMemoryRateLimitStore, RateLimiter

WINDOW = 15 * 60


def _make_request(client_ip: str, path: str) -> Request:
    """Build a real request, since Request mocks are falsy."""
    return Request(
        {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "client": (client_ip, 0),
            "path": path,
            "root_path": "",
            "query_string": b"",
            "headers": [],
        }
    )


class TestAllow:
    """Tests for RateLimiter.allow."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit_then_rejects(self, rate_limiter):
        """After `limit` allowed calls in the window, the next one is rejected."""
        results = [await rate_limiter.allow("otp:a@x.com", 3, WINDOW) for _ in range(4)]
        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_allows_again_after_window_elapses(self, rate_limiter, clock):
        """Requests slide out of the window and free up capacity."""
        for _ in range(3):
            assert await rate_limiter.allow("otp:a@x.com", 3, WINDOW)
        assert not await rate_limiter.allow("otp:a@x.com", 3, WINDOW)

        clock.advance(WINDOW + 1)

        assert await rate_limiter.allow("otp:a@x.com", 3, WINDOW)

    @pytest.mark.asyncio
    async def test_rejected_request_is_not_recorded(self, rate_limiter, clock):
        """Rejections do not extend the lockout."""
        assert await rate_limiter.allow("k", 1, 60)
        clock.advance(30)
        assert not await rate_limiter.allow("k", 1, 60)
        assert not await rate_limiter.allow("k", 1, 60)

        # Only the first request (t=0) counts, so t=61 is allowed
        clock.advance(31)
        assert await rate_limiter.allow("k", 1, 60)

    @pytest.mark.asyncio
    async def test_window_is_sliding(self, rate_limiter, clock):
        """Capacity frees up one request at a time."""
        assert await rate_limiter.allow("k", 2, 60)
        clock.advance(40)
        assert await rate_limiter.allow("k", 2, 60)
        clock.advance(30)  # first request is now 70s old
        assert await rate_limiter.allow("k", 2, 60)
        assert not await rate_limiter.allow("k", 2, 60)

    @pytest.mark.asyncio
    async def test_identifiers_are_independent(self, rate_limiter):
        assert await rate_limiter.allow("login:a@x.com", 1, WINDOW)
        assert not await rate_limiter.allow("login:a@x.com", 1, WINDOW)
        assert await rate_limiter.allow("login:b@x.com", 1, WINDOW)

    @pytest.mark.asyncio
    async def test_concurrent_calls_never_exceed_limit(self):
        """Simultaneous requests for one identifier cannot all slip under the limit."""
        limiter = RateLimiter(InMemoryRateLimitStore())
        results = await asyncio.gather(*(limiter.allow("k", 5, 60) for _ in range(20)))
        assert results.count(True) == 5


class TestSweep:
    """Tests for the periodic rate-limit sweep."""

    @pytest.mark.asyncio
    async def test_sweep_removes_identifiers_idle_for_a_day(self, rate_limiter, clock):
        await rate_limiter.allow("old", 5, WINDOW)
        clock.advance(23 * 3600)
        await rate_limiter.allow("recent", 5, WINDOW)
        clock.advance(2 * 3600)

        removed = await rate_limiter.sweep()

        assert removed == 1
        assert await rate_limiter.size() == 1
        assert await rate_limiter.store.get("old") == []
        assert len(await rate_limiter.store.get("recent")) == 1

    @pytest.mark.asyncio
    async def test_sweep_keeps_recent_timestamps_only(self, clock):
        store = InMemoryRateLimitStore()
        await store.set("k", [clock() - 90_000, clock() - 10], 60)

        removed = await store.sweep(clock() - 24 * 3600)

        assert removed == 0
        assert await store.get("k") == [clock() - 10]


class TestRateLimitDecorator:
    """Tests for the endpoint decorator, via the enrollment lookup route."""

    @pytest.mark.asyncio
    async def test_decorator_rejects_after_limit(self, monkeypatch):
        from app.core import rate_limit as rate_limit_module
        from app.core.exceptions import RateLimitExceededError

        monkeypatch.setattr(
            rate_limit_module, "_rate_limiter", RateLimiter(InMemoryRateLimitStore())
        )

        @rate_limit_module.rate_limit(limit=2, window_seconds=60)
        async def endpoint(request: Request):
            return "ok"

        request = _make_request("10.0.0.1", "/api/v1/enrollment/X")

        assert await endpoint(request=request) == "ok"
        assert await endpoint(request=request) == "ok"
        with pytest.raises(RateLimitExceededError):
            await endpoint(request=request)

    @pytest.mark.asyncio
    async def test_decorator_keys_by_client_ip_and_path(self, monkeypatch):
        from app.core import rate_limit as rate_limit_module
        from app.core.exceptions import RateLimitExceededError

        monkeypatch.setattr(
            rate_limit_module, "_rate_limiter", RateLimiter(InMemoryRateLimitStore())
        )

        @rate_limit_module.rate_limit(limit=1, window_seconds=60)
        async def endpoint(request: Request):
            return "ok"

        assert await endpoint(_make_request("10.0.0.1", "/api/v1/enrollment/A")) == "ok"
        assert await endpoint(_make_request("10.0.0.2", "/api/v1/enrollment/A")) == "ok"
        assert await endpoint(_make_request("10.0.0.1", "/api/v1/enrollment/B")) == "ok"
        with pytest.raises(RateLimitExceededError):
            await endpoint(_make_request("10.0.0.1", "/api/v1/enrollment/A"))
