"""
Request dependencies: container resources and the authenticated identity.
"""
from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.core.config import Settings
from branchlearn.core.container import ServiceContainer
from branchlearn.core.errors import AuthenticationError
from branchlearn.services.identity import Identity, load_identity


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_settings_dep(container: ServiceContainer = Depends(get_container)) -> Settings:
    return container.settings


async def get_db(container: ServiceContainer = Depends(get_container)) -> AsyncIterator[AsyncSession]:
    async with container.database.session() as session:
        yield session


async def get_current_identity(request: Request, db: AsyncSession = Depends(get_db)) -> Identity:
    """Checked once at the trust boundary; everything downstream takes the typed Identity."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise AuthenticationError()
    identity = await load_identity(db, user_id)
    if identity is None:
        raise AuthenticationError()
    return identity
