"""VR session request and response schemas."""
from datetime import datetime

from pydantic import Field

from branchlearn.schemas.common import CamelModel


class VrSessionCreateRequest(CamelModel):
    equipment_id: str


class VrSessionUpdateRequest(CamelModel):
    progress: int = Field(..., ge=0, le=100)
    completed: bool = False


class VrSessionResponse(CamelModel):
    id: str
    user_id: str
    equipment_id: str
    start_time: datetime
    end_time: datetime | None = None
    progress: int
    completed: bool
