"""
Road Trip Planner Backend — Rate Limiting Middleware
=====================================================

What:  Per-IP fixed-window rate limiter.
Why:   Protects the API (and the upstream provider quotas behind it) from
       abusive clients.
How:   Each client IP maps to {count, reset_at}. The first request of a window
       sets count=1 and reset_at=now+window. Once now > reset_at the window
       starts over. A request arriving when count >= max is rejected with 429
       and a retryAfter hint (seconds until reset_at, rounded up).
Who:   Applied to every request via Starlette middleware.
When:  After request ID and logging, before any route work.

Algorithm: Fixed Window Counter
    A client can burst up to 2×max requests across a window boundary. That
    is accepted in exchange for O(1) memory per client.

Scaling Note:
    State lives in this process only. Multiple workers or instances each
    keep their own counters. A shared store (e.g. Redis INCR + EXPIRE) can
    replace FixedWindowRateLimiter behind the same hit() contract.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from roadtrip_api.config import settings
from roadtrip_api.exceptions import RateLimitExceededError
from roadtrip_api.middleware.logging import client_ip_of

logger = logging.getLogger(__name__)


@dataclass
class WindowState:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """
    In-memory fixed-window counter keyed by client identifier.

    Args:
        max_requests:   Requests allowed per window (default: settings, 100)
        window_seconds: Window length (default: settings, 900 = 15 minutes)
        clock:          Monotonic seconds source; injectable for tests
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._clock = clock
        self._clients: Dict[str, WindowState] = {}

    def hit(self, client_id: str) -> int:
        """
        Records one request for `client_id`.

        Returns:
            Requests remaining in the current window.
        Raises:
            RateLimitExceededError: the client is over the limit; carries
                retry_after (seconds, ≥ 1).
        """
        now = self._clock()
        state = self._clients.get(client_id)

        if state is None or now > state.reset_at:
            self._clients[client_id] = WindowState(count=1, reset_at=now + self.window_seconds)
            return self.max_requests - 1

        if state.count >= self.max_requests:
            retry_after = max(1, math.ceil(state.reset_at - now))
            raise RateLimitExceededError(
                retry_after=retry_after,
                context={"client": client_id, "count": state.count},
            )

        state.count += 1
        return self.max_requests - state.count

    def reset(self) -> None:
        self._clients.clear()

    def __len__(self) -> int:
        return len(self._clients)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies a FixedWindowRateLimiter per client IP.

    Excluded paths:
        /health and the API docs are always reachable.

    Response on rate limit:
        HTTP 429 with body {"message", "error", "retryAfter"} and a
        Retry-After header.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app: ASGIApp, limiter: Optional[FixedWindowRateLimiter] = None):
        super().__init__(app)
        self.limiter = limiter or FixedWindowRateLimiter()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = client_ip_of(request)
        try:
            self.limiter.hit(client_ip)
        except RateLimitExceededError as exc:
            logger.warning(
                "Rate limit exceeded for IP %s (%d requests per %ss window)",
                client_ip,
                self.limiter.max_requests,
                self.limiter.window_seconds,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "message": exc.message,
                    "error": exc.error_code,
                    "retryAfter": exc.retry_after,
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)
