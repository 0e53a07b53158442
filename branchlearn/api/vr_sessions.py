"""VR training sessions API: start, list and update progress for the caller's own sessions."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.api.deps import get_current_identity, get_db
from branchlearn.schemas.vr import VrSessionCreateRequest, VrSessionResponse, VrSessionUpdateRequest
from branchlearn.services import vr_sessions
from branchlearn.services.identity import Identity

router = APIRouter(prefix="/api/vr-sessions", tags=["vr"])


@router.post("", response_model=VrSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: VrSessionCreateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await vr_sessions.start_session(db, identity, payload.equipment_id)


@router.put("/{session_id}", response_model=VrSessionResponse)
async def update_session(
    session_id: str,
    payload: VrSessionUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await vr_sessions.update_session(
        db, identity, session_id, progress=payload.progress, completed=payload.completed
    )


@router.get("", response_model=list[VrSessionResponse])
async def list_sessions(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await vr_sessions.list_sessions(db, identity)
