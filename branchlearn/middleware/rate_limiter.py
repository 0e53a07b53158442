"""
Sliding window rate limiter for POST /api/login (Redis-backed)

Key is the submitted identifier (username, email or student ID); falls back
to the client address when the body cannot be parsed. Uses sorted sets
(ZADD/ZREMRANGEBYSCORE/ZCARD) for a true sliding window.
"""
import json
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

RATE_LIMIT_PREFIX = "ratelimit:login:"
LIMITED_PATHS = ("/api/login", "/api/login/")


class SlidingWindowRateLimiter(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "POST" or request.url.path not in LIMITED_PATHS:
            return await call_next(request)

        client_host = request.client.host if request.client else "unknown"
        # Starlette caches the body, so the route can still read it.
        body = await request.body()
        try:
            data = json.loads(body)
            tracking_key = str(data.get("username") or client_host)
        except (ValueError, AttributeError):
            tracking_key = client_host

        container = request.app.state.container
        settings = container.settings
        redis = container.redis
        key = f"{RATE_LIMIT_PREFIX}{tracking_key}"
        now = time.time()
        window_start = now - settings.RATE_LIMIT_WINDOW_SECONDS

        pipe = redis.pipeline()
        # Remove entries outside the window
        pipe.zremrangebyscore(key, "-inf", window_start)
        # Count current attempts in window
        pipe.zcard(key)
        # Add this attempt
        pipe.zadd(key, {str(now): now})
        pipe.expire(key, settings.RATE_LIMIT_WINDOW_SECONDS + 1)
        results = await pipe.execute()

        attempt_count = results[1]  # count before this attempt

        if attempt_count >= settings.RATE_LIMIT_MAX_ATTEMPTS:
            return JSONResponse(
                status_code=429,
                content={
                    "message": (
                        f"Too many login attempts. Maximum {settings.RATE_LIMIT_MAX_ATTEMPTS} "
                        f"attempts per {settings.RATE_LIMIT_WINDOW_SECONDS} seconds."
                    ),
                    "retryAfterSeconds": settings.RATE_LIMIT_WINDOW_SECONDS,
                },
                headers={"Retry-After": str(settings.RATE_LIMIT_WINDOW_SECONDS)},
            )

        return await call_next(request)
