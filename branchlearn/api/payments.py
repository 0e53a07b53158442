"""
Payments API

Flow:
  1. Session validated by middleware; Idempotency-Key replays handled there
  2. create-payment-intent prices the installment and opens a processor intent
  3. payment-success re-queries the processor and records the installment
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.api.deps import get_container, get_current_identity, get_db
from branchlearn.core.container import ServiceContainer
from branchlearn.core.errors import ValidationError
from branchlearn.schemas.payments import (
    PaymentConfirmationResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentResponse,
    PaymentSuccessRequest,
)
from branchlearn.services import enrollment
from branchlearn.services.identity import Identity

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["payments"])


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    payload: PaymentIntentRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    if not payload.branch_id or payload.installment_number in (None, ""):
        raise ValidationError("Branch ID and installment number are required")

    settings = container.settings
    result = await enrollment.create_payment_intent(
        db,
        container.gateway,
        identity,
        payload.branch_id,
        payload.installment_number,
        currency=settings.PAYMENT_CURRENCY,
        enforce_order=settings.ENFORCE_INSTALLMENT_ORDER,
    )
    return PaymentIntentResponse(
        client_secret=result.intent.client_secret,
        payment_intent_id=result.intent.id,
        amount=result.amount,
    )


@router.post(
    "/payment-success",
    response_model=PaymentConfirmationResponse,
    response_model_exclude_none=True,
)
async def payment_success(
    payload: PaymentSuccessRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    if not payload.payment_intent_id:
        raise ValidationError("Payment intent ID is required")

    result = await enrollment.confirm_payment(db, container.gateway, identity, payload.payment_intent_id)
    return PaymentConfirmationResponse(
        payment=PaymentResponse.model_validate(result.payment),
        student_id=result.student_id,
    )


@router.get("/user/payments", response_model=list[PaymentResponse])
async def my_payments(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Payment history. A read failure degrades to an empty list."""
    try:
        return await enrollment.list_payments(db, identity.id)
    except SQLAlchemyError:
        logger.exception("Payment history unavailable for user %s", identity.id)
        return []
