"""
Service container

Owns every long-lived resource (database engine, Redis client, session store,
document file store, payment gateway). Built once per application, opened and
closed by the FastAPI lifespan, and reached by handlers through dependencies.
"""
import logging

import redis.asyncio as aioredis

from branchlearn.core.config import Settings
from branchlearn.core.file_storage import DocumentFileStore
from branchlearn.core.redis_client import close_redis, open_redis
from branchlearn.core.sessions import SessionStore
from branchlearn.db.database import Database
from branchlearn.services.payment_gateway import PaymentGateway, StripeGateway

logger = logging.getLogger(__name__)


class ServiceContainer:
    def __init__(
        self,
        settings: Settings,
        *,
        redis: aioredis.Redis | None = None,
        gateway: PaymentGateway | None = None,
    ):
        self.settings = settings
        self.database = Database(settings.database_url, echo=settings.DEBUG)
        self.files = DocumentFileStore(settings.UPLOAD_ROOT)
        self.gateway: PaymentGateway = gateway or StripeGateway.from_settings(settings)
        self._redis = redis
        self._owns_redis = redis is None
        self._sessions: SessionStore | None = None

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError("ServiceContainer is not open")
        return self._redis

    @property
    def sessions(self) -> SessionStore:
        if self._sessions is None:
            raise RuntimeError("ServiceContainer is not open")
        return self._sessions

    async def open(self) -> None:
        await self.database.open()
        if self._redis is None:
            self._redis = open_redis(self.settings)
        self._sessions = SessionStore(self._redis, self.settings.SESSION_TTL_SECONDS)
        logger.info("Service container open (db=%s)", self.database.engine.url.render_as_string())

    async def close(self) -> None:
        if self._owns_redis:
            await close_redis(self._redis)
            self._redis = None
        self._sessions = None
        await self.database.close()
