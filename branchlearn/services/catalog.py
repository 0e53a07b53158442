"""
Catalog reads and teacher video publishing
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.core.errors import AuthorizationError, BranchNotFound
from branchlearn.models.catalog import Branch, EquipmentKit, Video
from branchlearn.services.access import can_view_teacher_videos, visible_videos
from branchlearn.services.identity import Identity

logger = logging.getLogger(__name__)


async def list_branches(db: AsyncSession) -> list[Branch]:
    result = await db.execute(select(Branch).order_by(Branch.name))
    return list(result.scalars().all())


async def get_branch(db: AsyncSession, branch_id: str) -> Branch:
    branch = await db.get(Branch, branch_id)
    if branch is None:
        raise BranchNotFound()
    return branch


async def list_equipment(db: AsyncSession, branch_id: str) -> list[EquipmentKit]:
    await get_branch(db, branch_id)
    result = await db.execute(
        select(EquipmentKit).where(EquipmentKit.branch_id == branch_id).order_by(EquipmentKit.name)
    )
    return list(result.scalars().all())


async def branch_videos(db: AsyncSession, identity: Identity, branch_id: str) -> list[Video]:
    """Videos of a branch the caller may watch; restricted ones need enrollment or the teacher role."""
    result = await db.execute(
        select(Video).where(Video.branch_id == branch_id).order_by(Video.created_at.desc())
    )
    return visible_videos(identity, result.scalars().all())


async def create_video(
    db: AsyncSession,
    identity: Identity,
    *,
    title: str,
    description: str,
    youtube_id: str,
    branch_id: str,
    tags: list[str],
    restricted_access: bool,
) -> Video:
    if not identity.is_teacher:
        raise AuthorizationError("Only teachers can upload videos")
    await get_branch(db, branch_id)

    video = Video(
        title=title,
        description=description,
        youtube_id=youtube_id,
        teacher_id=identity.id,
        branch_id=branch_id,
        tags=list(tags),
        restricted_access=restricted_access,
    )
    db.add(video)
    await db.commit()
    logger.info("Teacher %s published video %s in branch %s", identity.id, video.id, branch_id)
    return video


async def teacher_videos(db: AsyncSession, identity: Identity) -> list[Video]:
    if not identity.is_teacher:
        raise AuthorizationError("Only teachers can access this route")
    result = await db.execute(
        select(Video).where(Video.teacher_id == identity.id).order_by(Video.created_at.desc())
    )
    return [v for v in result.scalars().all() if can_view_teacher_videos(identity, v)]
