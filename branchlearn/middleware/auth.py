"""
Session Authentication Middleware

Resolves the session cookie on every request and attaches the user id to
request.state. Protected /api routes get a 401 before any handler runs, so an
unauthenticated request cannot mutate state. The cookie is re-issued on each
authenticated response to keep the sliding expiry in step with Redis.
"""
import re

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

# /api paths that do NOT require a session
PUBLIC_API_PATHS = {
    "/api/login",
    "/api/register",
}

# Read-only catalog routes open to anonymous visitors
PUBLIC_API_GET_PATTERNS = (
    re.compile(r"^/api/branches/?$"),
    re.compile(r"^/api/branches/[^/]+/?$"),
    re.compile(r"^/api/branches/[^/]+/equipment/?$"),
)


def is_public(method: str, path: str) -> bool:
    if not path.startswith("/api"):
        return True
    if path.rstrip("/") in PUBLIC_API_PATHS:
        return True
    if method in ("GET", "HEAD"):
        return any(p.match(path) for p in PUBLIC_API_GET_PATTERNS)
    return False


def set_session_cookie(response: Response, request: Request, token: str) -> None:
    settings = request.app.state.container.settings
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_TTL_SECONDS,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    request.state.session_cookie_touched = True


def clear_session_cookie(response: Response, request: Request) -> None:
    settings = request.app.state.container.settings
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    request.state.session_cookie_touched = True


class SessionAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.user_id = None
        request.state.session_token = None
        request.state.session_cookie_touched = False

        if request.method == "OPTIONS":
            return await call_next(request)

        container = request.app.state.container
        token = request.cookies.get(container.settings.SESSION_COOKIE_NAME)
        user_id = await container.sessions.resolve(token) if token else None
        if user_id:
            request.state.user_id = user_id
            request.state.session_token = token

        if user_id is None and not is_public(request.method, request.url.path):
            return JSONResponse(status_code=401, content={"message": "Unauthorized"})

        response = await call_next(request)

        if user_id and not request.state.session_cookie_touched:
            set_session_cookie(response, request, token)
        return response
