"""Access log line per /api request: method, path, status and duration."""
import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("branchlearn.requests")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One line per /api request: method, path, status, elapsed ms."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if not request.url.path.startswith("/api"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.0fms", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response
