"""
Identity service: registration, credential checks and the typed Identity
handed to everything downstream of the session middleware.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.core.errors import AuthenticationError, ConflictError, ValidationError
from branchlearn.core.security import hash_password, looks_like_student_id, verify_password
from branchlearn.models.user import Enrollment, Role, User

logger = logging.getLogger(__name__)

SELF_REGISTERABLE_ROLES = frozenset({Role.STUDENT, Role.TEACHER, Role.LECTURER})


@dataclass(frozen=True)
class Identity:
    id: str
    username: str
    email: str
    role: Role
    student_id: str | None
    enrolled_branches: frozenset[str]

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER


async def _enrolled_branch_ids(db: AsyncSession, user_id: str) -> frozenset[str]:
    result = await db.execute(select(Enrollment.branch_id).where(Enrollment.user_id == user_id))
    return frozenset(result.scalars().all())


async def identity_for(db: AsyncSession, user: User) -> Identity:
    return Identity(
        id=user.id,
        username=user.username,
        email=user.email,
        role=Role(user.role),
        student_id=user.student_id,
        enrolled_branches=await _enrolled_branch_ids(db, user.id),
    )


async def load_identity(db: AsyncSession, user_id: str) -> Identity | None:
    user = await db.get(User, user_id)
    if user is None:
        return None
    return await identity_for(db, user)


async def register(
    db: AsyncSession,
    *,
    username: str,
    email: str,
    password: str,
    role: Role | None = None,
    name: str | None = None,
    phone: str | None = None,
    address: str | None = None,
) -> Identity:
    """Create a user. Raises ConflictError naming the first clashing field."""
    role = role or Role.STUDENT
    if role not in SELF_REGISTERABLE_ROLES:
        raise ValidationError(f"Role '{role.value}' cannot be self-registered")
    # Keeps username, email and student id lookups disjoint for login.
    if "@" in username or looks_like_student_id(username):
        raise ValidationError("Username must not look like an email address or a student ID")

    email = email.lower()
    existing = await db.execute(
        select(User).where(or_(User.username == username, User.email == email))
    )
    clashes = existing.scalars().all()
    if clashes:
        field = "Username" if any(u.username == username for u in clashes) else "Email"
        raise ConflictError(f"{field} already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        name=name,
        phone=phone,
        address=address,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Username or email already exists")
    await db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, role.value)
    return Identity(
        id=user.id,
        username=user.username,
        email=user.email,
        role=role,
        student_id=None,
        enrolled_branches=frozenset(),
    )


async def authenticate(db: AsyncSession, identifier: str, password: str) -> Identity:
    """Match identifier against username, email or student id, then verify the password."""
    result = await db.execute(
        select(User).where(
            or_(
                User.username == identifier,
                User.email == identifier.lower(),
                User.student_id == identifier,
            )
        )
    )
    def precedence(u: User) -> int:
        if u.username == identifier:
            return 0
        if u.email == identifier.lower():
            return 1
        return 2

    # Registration keeps the three fields disjoint; precedence covers legacy rows.
    user = min(result.scalars().all(), key=precedence, default=None)

    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return await identity_for(db, user)
