"""
Verification documents, one row per (user, type)
"""
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from branchlearn.db.database import Base
from branchlearn.models.user import enum_column, utcnow


class DocumentType(str, PyEnum):
    NATIONAL_ID = "national_id"
    PASSPORT = "passport"
    BIRTH_CERTIFICATE = "birth_certificate"
    ACADEMIC_TRANSCRIPT = "academic_transcript"
    MARKSHEET = "marksheet"
    TRANSFER_CERTIFICATE = "transfer_certificate"
    ADMISSION_LETTER = "admission_letter"
    ENTRANCE_RESULT = "entrance_result"
    PROFILE_PHOTO = "profile_photo"
    DEGREE_CERTIFICATE = "degree_certificate"
    UGC_NET = "ugc_net"
    EXPERIENCE_LETTER = "experience_letter"
    RESUME = "resume"
    TEACHER_CERTIFICATION = "teacher_certification"
    PAN_CARD = "pan_card"
    SIGNATURE = "signature"


class DocumentStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("user_id", "type", name="uq_documents_user_type"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[DocumentType] = mapped_column(enum_column(DocumentType, "document_type"), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)
    status: Mapped[DocumentStatus] = mapped_column(
        enum_column(DocumentStatus, "document_status"), default=DocumentStatus.PENDING, nullable=False
    )
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def url(self) -> str:
        return f"/{self.storage_path}"
