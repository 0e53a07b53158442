"""
Installment payments

Rows are written once, after the processor reports a successful charge, and
never updated.
"""
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from branchlearn.db.database import Base
from branchlearn.models.user import enum_column, utcnow


class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("installment_number IN (1, 2, 3)", name="ck_payments_installment"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id", ondelete="CASCADE"), index=True, nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    installment_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        enum_column(PaymentStatus, "payment_status"), default=PaymentStatus.COMPLETED, nullable=False
    )
    # Processor intent id; unique so a replayed confirmation cannot insert twice.
    gateway_payment_id: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
