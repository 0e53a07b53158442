"""
BranchLearn API: FastAPI application entrypoint

    uvicorn branchlearn.main:app
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from branchlearn.api import auth, catalog, documents, health, payments, vr_sessions
from branchlearn.core.config import Settings, get_settings
from branchlearn.core.container import ServiceContainer
from branchlearn.core.errors import AppError
from branchlearn.middleware.auth import SessionAuthMiddleware
from branchlearn.middleware.idempotency import IdempotencyMiddleware
from branchlearn.middleware.rate_limiter import SlidingWindowRateLimiter
from branchlearn.middleware.request_log import RequestLogMiddleware

logger = logging.getLogger(__name__)


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"message": "Invalid request data", "errors": errors})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        message = "An internal error occurred."
        if settings.DEBUG:
            message = f"An internal error occurred: {exc}"
        return JSONResponse(status_code=500, content={"message": message})


def create_app(settings: Settings | None = None, container: ServiceContainer | None = None) -> FastAPI:
    settings = settings or get_settings()
    container = container or ServiceContainer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=settings.LOG_LEVEL)
        await container.open()
        yield
        await container.close()

    app = FastAPI(
        title="BranchLearn API",
        description="Branch enrollment: verification documents, installment payments and gated lessons.",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
    )
    app.state.container = container

    # ── Middleware (last added runs first) ────────────────────────────────────
    # Idempotency sits inside auth so it can scope keys to the session.
    app.add_middleware(IdempotencyMiddleware)
    app.add_middleware(SessionAuthMiddleware)
    app.add_middleware(SlidingWindowRateLimiter)
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app, settings)

    # ── Prometheus Metrics ────────────────────────────────────────────────────
    if settings.METRICS_ENABLED:
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(documents.router)
    app.include_router(payments.router)
    app.include_router(catalog.router)
    app.include_router(vr_sessions.router)
    app.include_router(health.router)

    @app.get("/")
    async def root():
        return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(app, host=_settings.HOST, port=_settings.PORT)
