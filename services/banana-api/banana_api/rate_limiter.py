"""
Rate limiting for the banana API service.

Implements in-memory fixed window rate limiting per client IP with a bounded
wait queue. Three named policies are configured from settings:

- global: every request, 100 requests/minute, queue of 10
- api: forecast and analytics routes, 50 requests/minute, queue of 5
- strict: diagnostics routes, 10 requests/minute, queue of 2

When a window is used up, requests wait in arrival order until the window
rolls over. When the queue is full as well, the request is rejected with
RateLimitExceededException.

Note: For production with multiple instances, counters would need a shared
store; this limiter only coordinates requests within one process.
"""

import asyncio
import math
import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Deque, Dict, Iterable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from .config import Settings, settings
from .exceptions import RateLimitExceededException
from .logging_config import get_logger, sanitize_for_logging
from .metrics import track_rate_limit_rejection

logger = get_logger(__name__)

GLOBAL_POLICY = "global"
API_POLICY = "api"
STRICT_POLICY = "strict"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Configuration for a named fixed window policy."""

    name: str
    limit: int  # Permits per window
    window_seconds: float
    queue_limit: int  # Requests allowed to wait for the next window


@dataclass
class _Window:
    """Counter state for one client under one policy."""

    started_at: float
    permits_used: int = 0
    waiters: Deque[asyncio.Future] = field(default_factory=deque)
    lock: Lock = field(default_factory=Lock)
    rollover: Optional[asyncio.TimerHandle] = None


class FixedWindowRateLimiter:
    """
    Fixed window rate limiter with a FIFO wait queue, partitioned by key.

    Each key has its own window guarded by its own lock, so callers with
    different keys never contend.

    Attributes:
        policy: Limits applied to every key
    """

    CLEANUP_INTERVAL_SECONDS = 60.0

    def __init__(
        self,
        policy: RateLimitPolicy,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize rate limiter with a policy.

        Args:
            policy: Limits to enforce
            clock: Monotonic time source in seconds
        """
        self.policy = policy
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._last_cleanup = clock()

    def _get_window(self, key: str) -> _Window:
        window = self._windows.get(key)
        if window is None:
            window = self._windows.setdefault(key, _Window(started_at=self._clock()))
        return window

    def _roll(self, window: _Window, now: float) -> None:
        """Start a new window if the current one has elapsed, then serve waiters."""
        elapsed = now - window.started_at
        if elapsed >= self.policy.window_seconds:
            window.started_at = now - (elapsed % self.policy.window_seconds)
            window.permits_used = 0

        while window.waiters and window.permits_used < self.policy.limit:
            waiter = window.waiters.popleft()
            if waiter.done():
                continue
            window.permits_used += 1
            waiter.set_result(None)

    def _retry_after(self, window: _Window, now: float) -> int:
        remaining = window.started_at + self.policy.window_seconds - now
        return max(1, math.ceil(remaining))

    def _schedule_rollover(
        self, key: str, window: _Window, loop: asyncio.AbstractEventLoop, now: float
    ) -> None:
        if window.rollover is not None:
            return
        delay = max(0.0, window.started_at + self.policy.window_seconds - now)
        window.rollover = loop.call_later(
            delay, self._on_rollover, key, window, loop, window.started_at
        )

    def _on_rollover(
        self,
        key: str,
        window: _Window,
        loop: asyncio.AbstractEventLoop,
        scheduled_for: float,
    ) -> None:
        with window.lock:
            window.rollover = None
            now = self._clock()
            # A late timer may find the window already rolled by acquire()
            if window.started_at == scheduled_for:
                now = max(now, window.started_at + self.policy.window_seconds)
            self._roll(window, now)
            if window.waiters:
                self._schedule_rollover(key, window, loop, now)

        logger.debug(
            "Rate limit window rolled over",
            policy=self.policy.name,
            client=key,
            waiting=len(window.waiters),
        )

    def _cleanup_idle_windows(self, now: float) -> None:
        """Drop windows that have been idle for two full windows."""
        if now - self._last_cleanup < self.CLEANUP_INTERVAL_SECONDS:
            return
        self._last_cleanup = now

        idle_after = 2 * self.policy.window_seconds
        for key, window in list(self._windows.items()):
            with window.lock:
                if not window.waiters and now - window.started_at >= idle_after:
                    self._windows.pop(key, None)

    async def acquire(self, key: str) -> None:
        """
        Take a permit for ``key``, waiting in the queue if needed.

        Args:
            key: Client identity, usually the source IP

        Raises:
            RateLimitExceededException: If the window and the queue are full
        """
        loop = asyncio.get_running_loop()
        now = self._clock()
        self._cleanup_idle_windows(now)
        window = self._get_window(key)

        with window.lock:
            self._roll(window, now)

            if window.permits_used < self.policy.limit and not window.waiters:
                window.permits_used += 1
                return

            queued = sum(1 for waiter in window.waiters if not waiter.done())
            if queued >= self.policy.queue_limit:
                retry_after = self._retry_after(window, now)
                track_rate_limit_rejection(self.policy.name)
                logger.warning(
                    "Rate limit exceeded",
                    policy=self.policy.name,
                    client=sanitize_for_logging(key),
                    limit=self.policy.limit,
                    queued=queued,
                    retry_after_seconds=retry_after,
                )
                raise RateLimitExceededException(
                    policy=self.policy.name,
                    limit=self.policy.limit,
                    window_seconds=self.policy.window_seconds,
                    retry_after=retry_after,
                )

            waiter = loop.create_future()
            window.waiters.append(waiter)
            self._schedule_rollover(key, window, loop, now)

        logger.debug(
            "Request queued by rate limiter",
            policy=self.policy.name,
            client=sanitize_for_logging(key),
            position=queued + 1,
        )

        try:
            await waiter
        except asyncio.CancelledError:
            with window.lock:
                if waiter in window.waiters:
                    window.waiters.remove(waiter)
            raise

    def get_usage(self, key: str) -> Dict[str, Any]:
        """Get current window usage for ``key``."""
        window = self._windows.get(key)
        if window is None:
            permits_used, waiting = 0, 0
        else:
            with window.lock:
                if self._clock() - window.started_at >= self.policy.window_seconds:
                    permits_used = 0
                else:
                    permits_used = window.permits_used
                waiting = sum(1 for waiter in window.waiters if not waiter.done())

        return {
            "policy": self.policy.name,
            "permits_used": permits_used,
            "limit": self.policy.limit,
            "waiting": waiting,
            "queue_limit": self.policy.queue_limit,
            "window_seconds": self.policy.window_seconds,
        }

    def reset(self) -> None:
        """Forget every window and cancel queued requests."""
        for window in list(self._windows.values()):
            with window.lock:
                if window.rollover is not None:
                    window.rollover.cancel()
                for waiter in window.waiters:
                    if not waiter.done() and not waiter.get_loop().is_closed():
                        waiter.cancel()
        self._windows.clear()
        logger.info("Rate limiter reset", policy=self.policy.name)


class RateLimiterRegistry:
    """Named rate limiters, one per policy."""

    def __init__(self, policies: Iterable[RateLimitPolicy]) -> None:
        self._limiters: Dict[str, FixedWindowRateLimiter] = {
            policy.name: FixedWindowRateLimiter(policy) for policy in policies
        }

    @classmethod
    def from_settings(cls, config: Settings) -> "RateLimiterRegistry":
        """Build the global, api and strict policies from settings."""
        return cls(
            [
                RateLimitPolicy(
                    GLOBAL_POLICY,
                    config.RATE_LIMIT_GLOBAL_LIMIT,
                    config.RATE_LIMIT_GLOBAL_WINDOW_SECONDS,
                    config.RATE_LIMIT_GLOBAL_QUEUE_LIMIT,
                ),
                RateLimitPolicy(
                    API_POLICY,
                    config.RATE_LIMIT_API_LIMIT,
                    config.RATE_LIMIT_API_WINDOW_SECONDS,
                    config.RATE_LIMIT_API_QUEUE_LIMIT,
                ),
                RateLimitPolicy(
                    STRICT_POLICY,
                    config.RATE_LIMIT_STRICT_LIMIT,
                    config.RATE_LIMIT_STRICT_WINDOW_SECONDS,
                    config.RATE_LIMIT_STRICT_QUEUE_LIMIT,
                ),
            ]
        )

    def get(self, name: str) -> FixedWindowRateLimiter:
        try:
            return self._limiters[name]
        except KeyError:
            raise ValueError(f"Unknown rate limit policy: {name}") from None

    def reset(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()


def get_client_key(request: Request) -> str:
    """Identify the caller by source IP."""
    if request.client and request.client.host:
        return request.client.host
    return "anonymous"


def rate_limit_response(exc: RateLimitExceededException) -> JSONResponse:
    """Build the 429 response for a rejected request."""
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests. Please try again later.",
            "retryAfterSeconds": exc.retry_after,
        },
        headers={"Retry-After": str(exc.retry_after)},
    )


class GlobalRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply one rate limit policy to every request.

    Health and metrics paths are skipped so probes and scrapes never
    compete with API traffic.
    """

    def __init__(
        self,
        app: ASGIApp,
        registry: RateLimiterRegistry,
        policy_name: str = GLOBAL_POLICY,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        super().__init__(app)
        self.registry = registry
        self.policy_name = policy_name
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        limiter = self.registry.get(self.policy_name)
        try:
            await limiter.acquire(get_client_key(request))
        except RateLimitExceededException as exc:
            return rate_limit_response(exc)

        return await call_next(request)


def require_rate_limit(policy_name: str) -> Callable:
    """
    Build a route dependency enforcing a named policy.

    Example:
        @router.get("/weatherforecast", dependencies=[Depends(require_rate_limit("api"))])
    """
    limiter = rate_limiters.get(policy_name)

    async def dependency(request: Request) -> None:
        await limiter.acquire(get_client_key(request))

    return dependency


# Global rate limiter registry
rate_limiters = RateLimiterRegistry.from_settings(settings)
