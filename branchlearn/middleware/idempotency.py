"""
Idempotency Key Middleware (Redis)

Applies to payment-intent creation so a double-submitted checkout does not
open two intents:
  - Cache hit  → return cached response immediately (no business logic)
  - Cache miss → execute handler, store response in Redis for 24h

Keys are scoped to the caller's session; requests without a session or
without an Idempotency-Key header pass straight through.
"""
import json
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

IDEMPOTENCY_PREFIX = "idempotent:"
IDEMPOTENCY_METHODS = {"POST", "PUT", "PATCH"}
IDEMPOTENCY_PATHS = {"/api/create-payment-intent"}


class IdempotencyMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in IDEMPOTENCY_METHODS:
            return await call_next(request)

        if request.url.path.rstrip("/") not in IDEMPOTENCY_PATHS:
            return await call_next(request)

        idem_key = request.headers.get("Idempotency-Key")
        session_token = getattr(request.state, "session_token", None)
        if not idem_key or not session_token:
            return await call_next(request)

        container = request.app.state.container
        redis = container.redis
        cache_key = f"{IDEMPOTENCY_PREFIX}{session_token}:{idem_key}"

        # Cache HIT → replay stored response
        cached = await redis.get(cache_key)
        if cached:
            data = json.loads(cached)
            logger.info("Replaying idempotent response for key %s", idem_key)
            return JSONResponse(
                content=data["body"],
                status_code=data["status_code"],
                headers={"X-Idempotency-Replay": "true"},
            )

        # Cache MISS → proceed to handler
        response = await call_next(request)

        body_bytes = b""
        async for chunk in response.body_iterator:
            body_bytes += chunk

        # Only successful responses are stored; failures stay retryable.
        if 200 <= response.status_code < 300:
            try:
                body = json.loads(body_bytes)
            except ValueError:
                body = None
            if body is not None:
                await redis.setex(
                    cache_key,
                    container.settings.IDEMPOTENCY_KEY_TTL_SECONDS,
                    json.dumps({"body": body, "status_code": response.status_code}),
                )

        return Response(
            content=body_bytes,
            status_code=response.status_code,
            media_type=response.media_type,
            headers=dict(response.headers),
        )
