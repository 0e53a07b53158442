"""
Server-side session store (Redis)

A session is an opaque token mapped to a user id under session:<token>.
Every successful resolve() pushes the expiry forward (sliding window).
"""
import logging

import redis.asyncio as aioredis

from branchlearn.core.security import new_session_token

logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"


class SessionStore:
    def __init__(self, redis: aioredis.Redis, ttl_seconds: int):
        self._redis = redis
        self.ttl_seconds = ttl_seconds

    async def create(self, user_id: str) -> str:
        token = new_session_token()
        await self._redis.setex(f"{SESSION_PREFIX}{token}", self.ttl_seconds, user_id)
        return token

    async def resolve(self, token: str) -> str | None:
        """Return the user id behind a token and refresh its expiry, or None."""
        if not token:
            return None
        key = f"{SESSION_PREFIX}{token}"
        pipe = self._redis.pipeline()
        pipe.get(key)
        pipe.expire(key, self.ttl_seconds)
        user_id, _ = await pipe.execute()
        return user_id

    async def destroy(self, token: str) -> None:
        await self._redis.delete(f"{SESSION_PREFIX}{token}")
