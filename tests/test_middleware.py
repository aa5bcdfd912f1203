"""
Inkpost Backend: Middleware Tests
===================================

What:  Login throttle and request id behaviour on a minimal app, so the
       attempt counters start empty for every test.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from inkpost.middleware.login_throttle import LoginThrottleMiddleware
from inkpost.middleware.request_id import RequestIDMiddleware


def _make_app(max_attempts: int, window_seconds: int = 60) -> FastAPI:
    app = FastAPI()

    @app.post("/users/login")
    async def login():
        return {"ok": True}

    @app.post("/users/register")
    async def register():
        return {"ok": True}

    @app.get("/posts")
    async def posts():
        return []

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        LoginThrottleMiddleware, max_attempts=max_attempts, window_seconds=window_seconds
    )
    return app


async def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestLoginThrottle:

    @pytest.mark.asyncio
    async def test_blocks_after_limit(self):
        async with await _client(_make_app(max_attempts=2)) as client:
            first = await client.post("/users/login")
            second = await client.post("/users/login")
            third = await client.post("/users/login")

        assert first.status_code == second.status_code == 200
        assert third.status_code == 429
        body = third.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["statusCode"] == 429
        assert int(third.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_register_shares_the_window(self):
        async with await _client(_make_app(max_attempts=1)) as client:
            await client.post("/users/register")
            response = await client.post("/users/login")

        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_other_routes_not_throttled(self):
        async with await _client(_make_app(max_attempts=1)) as client:
            responses = [await client.get("/posts") for _ in range(5)]

        assert all(r.status_code == 200 for r in responses)


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generates_short_id(self):
        async with await _client(_make_app(max_attempts=10)) as client:
            response = await client.get("/posts")

        assert len(response.headers["X-Request-ID"]) == 8
