"""
Auth API routes
"""
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.api.deps import get_container, get_current_identity, get_db
from branchlearn.core.container import ServiceContainer
from branchlearn.middleware.auth import clear_session_cookie, set_session_cookie
from branchlearn.schemas.auth import IdentityResponse, LoginRequest, RegisterRequest
from branchlearn.schemas.common import MessageResponse
from branchlearn.services import identity as identity_service
from branchlearn.services.identity import Identity

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=IdentityResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    """Create a student (or teacher/lecturer) account and sign it in."""
    identity = await identity_service.register(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        name=payload.name,
        phone=payload.phone,
        address=payload.address,
    )
    token = await container.sessions.create(identity.id)
    set_session_cookie(response, request, token)
    return IdentityResponse.from_identity(identity)


@router.post("/login", response_model=IdentityResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    """Sign in with username, email or student ID."""
    identity = await identity_service.authenticate(db, payload.username, payload.password)
    previous = getattr(request.state, "session_token", None)
    if previous:
        await container.sessions.destroy(previous)
    token = await container.sessions.create(identity.id)
    set_session_cookie(response, request, token)
    return IdentityResponse.from_identity(identity)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    container: ServiceContainer = Depends(get_container),
):
    await container.sessions.destroy(request.state.session_token)
    clear_session_cookie(response, request)
    return MessageResponse(message="Logged out")


@router.get("/user", response_model=IdentityResponse)
async def current_user(identity: Identity = Depends(get_current_identity)):
    return IdentityResponse.from_identity(identity)
