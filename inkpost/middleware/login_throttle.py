"""
Inkpost Backend: Login Throttle Middleware
============================================

What:  Per-IP sliding window on the credential endpoints.
Why:   Slows down password guessing and mass registration; every other
       route is left alone.

Algorithm: Sliding Window Log
    1. Keep a deque of attempt timestamps per IP
    2. Drop timestamps older than the window
    3. At or over the limit → 429 with Retry-After
    4. Otherwise record the attempt and continue

    State is in-process: with several workers each one counts separately,
    so the effective limit is attempts × workers.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from inkpost.config import settings
from inkpost.exceptions import RateLimitExceededError
from inkpost.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

THROTTLED_ROUTES = {
    ("POST", "/users/login"),
    ("POST", "/users/register"),
}


class LoginThrottleMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_attempts: int = None, window_seconds: int = None):
        super().__init__(app)
        self.max_attempts = max_attempts or settings.login_rate_limit_attempts
        self.window_seconds = window_seconds or settings.login_rate_limit_window
        self._attempts: Dict[str, Deque[float]] = defaultdict(deque)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if (request.method, request.url.path) not in THROTTLED_ROUTES:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()
        attempts = self._attempts[client_ip]
        while attempts and attempts[0] <= now - self.window_seconds:
            attempts.popleft()

        if len(attempts) >= self.max_attempts:
            retry_after = int(attempts[0] + self.window_seconds - now) + 1
            logger.warning(
                "Throttled %s %s from %s: %d attempts in %ds",
                request.method, request.url.path, client_ip, len(attempts), self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={**exc.to_dict(), "request_id": request_id_var.get("")},
                headers={"Retry-After": str(retry_after)},
            )

        attempts.append(now)
        self._prune_idle(now)
        return await call_next(request)

    def _prune_idle(self, now: float) -> None:
        """Forget IPs whose newest attempt has left the window."""
        cutoff = now - self.window_seconds
        idle = [ip for ip, stamps in self._attempts.items() if not stamps or stamps[-1] <= cutoff]
        for ip in idle:
            del self._attempts[ip]
