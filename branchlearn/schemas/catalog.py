"""Catalog schemas: branches, equipment and videos."""
from datetime import datetime

from pydantic import Field

from branchlearn.schemas.common import CamelModel


class BranchResponse(CamelModel):
    id: str
    name: str
    description: str
    location: str
    image: str
    price: int
    students_count: int
    teachers_count: int


class EquipmentKitResponse(CamelModel):
    id: str
    branch_id: str
    name: str
    description: str
    icon: str


class VideoCreateRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=5000)
    youtube_id: str = Field(..., min_length=1, max_length=64)
    branch_id: str
    tags: list[str] = Field(default_factory=list, max_length=20)
    restricted_access: bool = True


class VideoResponse(CamelModel):
    id: str
    title: str
    description: str
    youtube_id: str
    teacher_id: str
    branch_id: str
    tags: list[str]
    restricted_access: bool
    views: int
    created_at: datetime
