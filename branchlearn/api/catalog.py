"""
Catalog API: branches, equipment kits and lesson videos
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.api.deps import get_current_identity, get_db
from branchlearn.schemas.catalog import (
    BranchResponse,
    EquipmentKitResponse,
    VideoCreateRequest,
    VideoResponse,
)
from branchlearn.services import catalog
from branchlearn.services.identity import Identity

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/branches", response_model=list[BranchResponse])
async def list_branches(db: AsyncSession = Depends(get_db)):
    return await catalog.list_branches(db)


@router.get("/branches/{branch_id}", response_model=BranchResponse)
async def get_branch(branch_id: str, db: AsyncSession = Depends(get_db)):
    return await catalog.get_branch(db, branch_id)


@router.get("/branches/{branch_id}/equipment", response_model=list[EquipmentKitResponse])
async def list_equipment(branch_id: str, db: AsyncSession = Depends(get_db)):
    return await catalog.list_equipment(db, branch_id)


@router.get("/branches/{branch_id}/videos", response_model=list[VideoResponse])
async def branch_videos(
    branch_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Restricted videos are dropped unless the caller is enrolled or a teacher."""
    return await catalog.branch_videos(db, identity, branch_id)


@router.post("/videos", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: VideoCreateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await catalog.create_video(
        db,
        identity,
        title=payload.title,
        description=payload.description,
        youtube_id=payload.youtube_id,
        branch_id=payload.branch_id,
        tags=payload.tags,
        restricted_access=payload.restricted_access,
    )


@router.get("/teacher/videos", response_model=list[VideoResponse])
async def my_teacher_videos(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await catalog.teacher_videos(db, identity)
