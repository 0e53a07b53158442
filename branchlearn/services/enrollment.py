"""
Enrollment ledger

Installment pricing, payment intents and payment confirmation.

State transitions driven here:
  intent created (processor side only, no local row)
  → confirmed: Payment row written
  → installment 1 confirmed: student id issued (once per user) and the branch
    added to the user's enrollments

The Payment insert and the enrollment changes share one transaction, and the
unique gateway_payment_id makes a replayed confirmation a no-op. The student id
is set with a conditional UPDATE and the enrollment with an on-conflict-ignore
insert, so two first installments confirmed together still leave one of each.
"""
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.core.errors import (
    AuthorizationError,
    BranchNotFound,
    InvalidInstallment,
    PaymentNotSuccessful,
    ValidationError,
)
from branchlearn.core.security import generate_student_id
from branchlearn.models.catalog import Branch
from branchlearn.models.payment import Payment, PaymentStatus
from branchlearn.models.user import Enrollment, User, utcnow
from branchlearn.services.identity import Identity
from branchlearn.services.payment_gateway import IntentHandle, PaymentGateway

logger = logging.getLogger(__name__)

# Percent of the branch price owed per installment. The floors may leave a
# remainder of up to 2 units unpaid; it is not reconciled.
INSTALLMENT_PERCENTAGES: dict[int, int] = {1: 40, 2: 30, 3: 30}
ENROLLING_INSTALLMENT = 1
MINOR_UNITS_PER_UNIT = 100

# Enrollment is a set: a repeated (user, branch) insert is a no-op.
_INSERT_BY_DIALECT = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def parse_installment(raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidInstallment()
    try:
        number = int(raw)
    except (TypeError, ValueError):
        raise InvalidInstallment()
    if isinstance(raw, float) and raw != number:
        raise InvalidInstallment()
    if number not in INSTALLMENT_PERCENTAGES:
        raise InvalidInstallment()
    return number


def installment_amount(price: int, installment_number: int) -> int:
    """floor(price × 40%) for installment 1, floor(price × 30%) for 2 and 3."""
    percent = INSTALLMENT_PERCENTAGES.get(installment_number)
    if percent is None:
        raise InvalidInstallment()
    return price * percent // 100


@dataclass(frozen=True)
class PaymentIntentResult:
    amount: int
    intent: IntentHandle


@dataclass(frozen=True)
class ConfirmationResult:
    payment: Payment
    student_id: str | None
    replayed: bool = False


async def _has_completed_installment(
    db: AsyncSession, user_id: str, branch_id: str, installment_number: int
) -> bool:
    result = await db.execute(
        select(Payment.id).where(
            Payment.user_id == user_id,
            Payment.branch_id == branch_id,
            Payment.installment_number == installment_number,
            Payment.status == PaymentStatus.COMPLETED,
        )
    )
    return result.first() is not None


async def create_payment_intent(
    db: AsyncSession,
    gateway: PaymentGateway,
    identity: Identity,
    branch_id: str,
    installment_number: Any,
    *,
    currency: str,
    enforce_order: bool = False,
) -> PaymentIntentResult:
    number = parse_installment(installment_number)
    branch = await db.get(Branch, branch_id)
    if branch is None:
        raise BranchNotFound()

    if enforce_order and number > 1:
        if not await _has_completed_installment(db, identity.id, branch.id, number - 1):
            raise ValidationError(f"Installment {number - 1} must be paid first")

    amount = installment_amount(branch.price, number)
    intent = await gateway.create_intent(
        amount * MINOR_UNITS_PER_UNIT,
        currency,
        {
            "user_id": identity.id,
            "branch_id": branch.id,
            "installment_number": str(number),
        },
    )
    logger.info(
        "Payment intent %s created: user=%s branch=%s installment=%d amount=%d",
        intent.id, identity.id, branch.id, number, amount,
    )
    return PaymentIntentResult(amount=amount, intent=intent)


async def _payment_for_intent(db: AsyncSession, intent_id: str) -> Payment | None:
    result = await db.execute(select(Payment).where(Payment.gateway_payment_id == intent_id))
    return result.scalar_one_or_none()


async def _replay(db: AsyncSession, identity: Identity, payment: Payment) -> ConfirmationResult:
    if payment.user_id != identity.id:
        raise AuthorizationError("Payment belongs to another user")
    student_id = None
    if payment.installment_number == ENROLLING_INSTALLMENT:
        user = await db.get(User, payment.user_id)
        student_id = user.student_id if user else None
    logger.info("Payment %s already recorded; replaying confirmation", payment.gateway_payment_id)
    return ConfirmationResult(payment=payment, student_id=student_id, replayed=True)


async def _issue_student_id(db: AsyncSession, user_id: str) -> str:
    """
    Conditional write: only a user without a student id gets one. A concurrent
    confirmation that commits first keeps its id and this UPDATE matches no row.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.student_id.is_(None))
        .values(student_id=generate_student_id())
        .execution_options(synchronize_session=False)
    )
    student_id = (
        await db.execute(select(User.student_id).where(User.id == user_id))
    ).scalar_one()
    if result.rowcount:
        logger.info("Issued student id %s to user %s", student_id, user_id)
    return student_id


async def _enroll(db: AsyncSession, user_id: str, branch_id: str) -> None:
    insert = _INSERT_BY_DIALECT[db.get_bind().dialect.name]
    result = await db.execute(
        insert(Enrollment)
        .values(user_id=user_id, branch_id=branch_id, enrolled_at=utcnow())
        .on_conflict_do_nothing(index_elements=["user_id", "branch_id"])
    )
    if result.rowcount:
        logger.info("User %s enrolled in branch %s", user_id, branch_id)


async def confirm_payment(
    db: AsyncSession,
    gateway: PaymentGateway,
    identity: Identity,
    intent_id: str,
) -> ConfirmationResult:
    """Record a successful installment. Safe to call repeatedly for one intent."""
    existing = await _payment_for_intent(db, intent_id)
    if existing is not None:
        return await _replay(db, identity, existing)

    intent = await gateway.retrieve_intent(intent_id)
    if not intent.succeeded:
        raise PaymentNotSuccessful()

    meta = intent.metadata
    user_id, branch_id = meta.get("user_id"), meta.get("branch_id")
    if not user_id or not branch_id:
        raise PaymentNotSuccessful("Payment is missing enrollment details")
    if user_id != identity.id:
        raise AuthorizationError("Payment belongs to another user")
    number = parse_installment(meta.get("installment_number"))
    if await db.get(Branch, branch_id) is None:
        raise BranchNotFound()

    payment = Payment(
        user_id=user_id,
        branch_id=branch_id,
        amount=intent.amount_charged // MINOR_UNITS_PER_UNIT,
        installment_number=number,
        status=PaymentStatus.COMPLETED,
        gateway_payment_id=intent.id,
    )
    student_id = None
    try:
        db.add(payment)
        if number == ENROLLING_INSTALLMENT:
            student_id = await _issue_student_id(db, user_id)
            await _enroll(db, user_id, branch_id)
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent confirmation of the same intent.
        await db.rollback()
        existing = await _payment_for_intent(db, intent.id)
        if existing is None:
            raise
        return await _replay(db, identity, existing)

    logger.info(
        "Recorded installment %d for user %s branch %s (%s)",
        number, user_id, branch_id, intent.id,
    )
    return ConfirmationResult(payment=payment, student_id=student_id)


async def list_payments(db: AsyncSession, user_id: str) -> list[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc())
    )
    return list(result.scalars().all())
