"""
VR lab practice sessions

Progress only moves forward and a completed session is closed to updates.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.core.errors import NotFoundError, ValidationError
from branchlearn.models.catalog import EquipmentKit
from branchlearn.models.user import utcnow
from branchlearn.models.vr_session import VrSession
from branchlearn.services.identity import Identity


async def start_session(db: AsyncSession, identity: Identity, equipment_id: str) -> VrSession:
    if await db.get(EquipmentKit, equipment_id) is None:
        raise NotFoundError("Equipment not found")
    session = VrSession(
        user_id=identity.id,
        equipment_id=equipment_id,
        start_time=utcnow(),
        progress=0,
        completed=False,
    )
    db.add(session)
    await db.commit()
    return session


async def update_session(
    db: AsyncSession,
    identity: Identity,
    session_id: str,
    *,
    progress: int,
    completed: bool,
) -> VrSession:
    session = await db.get(VrSession, session_id)
    # Other users' sessions are reported as missing.
    if session is None or session.user_id != identity.id:
        raise NotFoundError("VR session not found")
    if session.completed:
        raise ValidationError("VR session is already completed")
    if progress < session.progress:
        raise ValidationError("Progress cannot go backwards")

    session.progress = progress
    session.completed = completed
    if completed:
        session.end_time = utcnow()
    await db.commit()
    return session


async def list_sessions(db: AsyncSession, identity: Identity) -> list[VrSession]:
    result = await db.execute(
        select(VrSession)
        .where(VrSession.user_id == identity.id)
        .order_by(VrSession.start_time.desc())
    )
    return list(result.scalars().all())
