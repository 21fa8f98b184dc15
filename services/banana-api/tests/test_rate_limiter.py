"""
Unit tests for the fixed window rate limiter.
"""

import asyncio
import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from banana_api.config import Settings
from banana_api.exceptions import RateLimitExceededException
from banana_api.rate_limiter import (FixedWindowRateLimiter,
                                     GlobalRateLimitMiddleware, RateLimitPolicy,
                                     RateLimiterRegistry)

CLIENT = "10.0.0.1"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_limiter(limit=3, window=60.0, queue=2, clock=None):
    policy = RateLimitPolicy("test", limit, window, queue)
    if clock is None:
        return FixedWindowRateLimiter(policy)
    return FixedWindowRateLimiter(policy, clock=clock)


class TestFixedWindowRateLimiter:
    """Tests for FixedWindowRateLimiter."""

    @pytest.mark.asyncio
    async def test_exact_limit_is_never_rejected(self):
        limiter = make_limiter(limit=3, queue=0)

        for _ in range(3):
            await limiter.acquire(CLIENT)

        usage = limiter.get_usage(CLIENT)
        assert usage["permits_used"] == 3
        assert usage["waiting"] == 0

    @pytest.mark.asyncio
    async def test_limit_plus_queue_plus_one_is_rejected(self):
        limiter = make_limiter(limit=3, queue=2)

        for _ in range(3):
            await limiter.acquire(CLIENT)

        queued = [asyncio.create_task(limiter.acquire(CLIENT)) for _ in range(2)]
        await asyncio.sleep(0)

        with pytest.raises(RateLimitExceededException) as exc_info:
            await limiter.acquire(CLIENT)

        assert exc_info.value.policy == "test"
        assert 1 <= exc_info.value.retry_after <= 60
        assert not any(task.done() for task in queued)
        assert limiter.get_usage(CLIENT)["waiting"] == 2

        limiter.reset()
        results = await asyncio.gather(*queued, return_exceptions=True)
        assert all(isinstance(r, asyncio.CancelledError) for r in results)

    @pytest.mark.asyncio
    async def test_no_queue_rejects_immediately(self):
        clock = FakeClock()
        limiter = make_limiter(limit=2, queue=0, clock=clock)

        await limiter.acquire(CLIENT)
        await limiter.acquire(CLIENT)

        with pytest.raises(RateLimitExceededException) as exc_info:
            await limiter.acquire(CLIENT)

        assert exc_info.value.retry_after == 60

    @pytest.mark.asyncio
    async def test_window_rollover_restores_permits(self):
        clock = FakeClock()
        limiter = make_limiter(limit=2, queue=0, clock=clock)

        await limiter.acquire(CLIENT)
        await limiter.acquire(CLIENT)

        clock.now = 45.0
        with pytest.raises(RateLimitExceededException) as exc_info:
            await limiter.acquire(CLIENT)
        assert exc_info.value.retry_after == 15

        clock.now = 60.0
        await limiter.acquire(CLIENT)
        assert limiter.get_usage(CLIENT)["permits_used"] == 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        limiter = make_limiter(limit=1, queue=0)

        await limiter.acquire("10.0.0.1")
        with pytest.raises(RateLimitExceededException):
            await limiter.acquire("10.0.0.1")

        await limiter.acquire("10.0.0.2")

    @pytest.mark.asyncio
    async def test_queued_requests_served_oldest_first(self):
        limiter = make_limiter(limit=1, window=0.05, queue=3)
        order = []

        async def request(index):
            await limiter.acquire(CLIENT)
            order.append(index)

        await limiter.acquire(CLIENT)
        tasks = []
        for index in range(3):
            tasks.append(asyncio.create_task(request(index)))
            await asyncio.sleep(0)

        await asyncio.wait_for(asyncio.gather(*tasks), timeout=5)

        assert order == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_late_rollover_timer_does_not_grant_extra_permit(self):
        limiter = make_limiter(limit=1, window=0.2, queue=1)
        started = time.monotonic()

        await limiter.acquire(CLIENT)
        second = asyncio.create_task(limiter.acquire(CLIENT))
        await asyncio.sleep(0)

        # Block the loop past the window end so the rollover timer runs late
        time.sleep(0.25)
        third = asyncio.create_task(limiter.acquire(CLIENT))
        for _ in range(3):
            await asyncio.sleep(0)

        assert second.done()
        assert not third.done()
        assert limiter.get_usage(CLIENT)["permits_used"] == 1

        await asyncio.wait_for(third, timeout=5)
        assert time.monotonic() - started >= 0.39

    @pytest.mark.asyncio
    async def test_cancelled_waiter_frees_queue_slot(self):
        limiter = make_limiter(limit=1, queue=1)

        await limiter.acquire(CLIENT)
        first = asyncio.create_task(limiter.acquire(CLIENT))
        await asyncio.sleep(0)

        first.cancel()
        await asyncio.gather(first, return_exceptions=True)

        second = asyncio.create_task(limiter.acquire(CLIENT))
        await asyncio.sleep(0)
        assert not second.done()

        limiter.reset()
        await asyncio.gather(second, return_exceptions=True)

    def test_usage_for_unknown_key(self):
        limiter = make_limiter()
        usage = limiter.get_usage("never-seen")

        assert usage["permits_used"] == 0
        assert usage["limit"] == 3
        assert usage["queue_limit"] == 2


class TestRateLimiterRegistry:
    """Tests for the named policy registry."""

    def test_default_policies(self, monkeypatch):
        monkeypatch.delenv("RATE_LIMIT_STRICT_QUEUE_LIMIT", raising=False)
        registry = RateLimiterRegistry.from_settings(Settings(_env_file=None))

        expected = {"global": (100, 10), "api": (50, 5), "strict": (10, 2)}
        for name, (limit, queue) in expected.items():
            policy = registry.get(name).policy
            assert policy.limit == limit
            assert policy.queue_limit == queue
            assert policy.window_seconds == 60.0

    def test_unknown_policy(self):
        registry = RateLimiterRegistry([])
        with pytest.raises(ValueError):
            registry.get("missing")


class TestGlobalRateLimitMiddleware:
    """Tests for the middleware applying a policy to every request."""

    @pytest.fixture
    def limited_client(self):
        registry = RateLimiterRegistry([RateLimitPolicy("global", 2, 60.0, 0)])
        app = FastAPI()
        app.add_middleware(
            GlobalRateLimitMiddleware,
            registry=registry,
            policy_name="global",
            exempt_paths=["/health"],
        )

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        with TestClient(app) as client:
            yield client

    def test_rejects_after_limit(self, limited_client):
        assert limited_client.get("/ping").status_code == 200
        assert limited_client.get("/ping").status_code == 200

        response = limited_client.get("/ping")

        assert response.status_code == 429
        body = response.json()
        assert set(body) == {"error", "retryAfterSeconds"}
        assert body["retryAfterSeconds"] >= 1
        assert response.headers["Retry-After"] == str(body["retryAfterSeconds"])

    def test_exempt_paths_skip_limit(self, limited_client):
        for _ in range(5):
            assert limited_client.get("/health").status_code == 200
        assert limited_client.get("/ping").status_code == 200
