"""Document schemas."""
from datetime import datetime

from branchlearn.models.document import DocumentStatus, DocumentType
from branchlearn.schemas.common import CamelModel


class DocumentResponse(CamelModel):
    id: str
    type: DocumentType
    url: str
    status: DocumentStatus
    feedback: str | None = None
    uploaded_at: datetime
