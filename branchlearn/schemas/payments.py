"""
Payment schemas

Request fields are optional at the schema level so a missing value is
reported with the ledger's own 400 message rather than a generic
validation error.
"""
from datetime import datetime

from pydantic import Field

from branchlearn.models.payment import PaymentStatus
from branchlearn.schemas.common import CamelModel


class PaymentIntentRequest(CamelModel):
    branch_id: str | None = None
    installment_number: int | str | None = Field(None, examples=[1])


class PaymentIntentResponse(CamelModel):
    client_secret: str
    payment_intent_id: str
    amount: int


class PaymentSuccessRequest(CamelModel):
    payment_intent_id: str | None = None


class PaymentResponse(CamelModel):
    id: str
    user_id: str
    branch_id: str
    amount: int
    installment_number: int
    status: PaymentStatus
    gateway_payment_id: str
    created_at: datetime


class PaymentConfirmationResponse(CamelModel):
    payment: PaymentResponse
    student_id: str | None = None
