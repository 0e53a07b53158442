"""
Access policy for lesson videos. Pure functions: no I/O, no side effects.
"""
from typing import Iterable, Protocol

from branchlearn.models.user import Role
from branchlearn.services.identity import Identity


class VideoLike(Protocol):
    branch_id: str
    teacher_id: str
    restricted_access: bool


def can_view_video(identity: Identity, video: VideoLike) -> bool:
    return (
        identity.role == Role.TEACHER
        or video.branch_id in identity.enrolled_branches
        or not video.restricted_access
    )


def can_view_teacher_videos(identity: Identity, video: VideoLike) -> bool:
    """Ownership check for a teacher's own content-management view."""
    return identity.role == Role.TEACHER and video.teacher_id == identity.id


def visible_videos(identity: Identity, videos: Iterable[VideoLike]) -> list:
    return [v for v in videos if can_view_video(identity, v)]
