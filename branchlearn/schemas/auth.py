"""
Auth schemas
"""
from pydantic import EmailStr, Field

from branchlearn.models.user import Role
from branchlearn.schemas.common import CamelModel
from branchlearn.services.identity import Identity


class LoginRequest(CamelModel):
    # Username, email or student ID.
    username: str = Field(..., min_length=3, max_length=255, examples=["asha", "STU1A2B3C4D5E"])
    password: str = Field(..., min_length=6, max_length=128)


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str | None = Field(None, min_length=2, max_length=255)
    phone: str | None = Field(None, min_length=10, max_length=32)
    address: str | None = Field(None, min_length=5, max_length=512)
    role: Role | None = None


class IdentityResponse(CamelModel):
    id: str
    username: str
    email: str
    role: Role
    student_id: str | None = None
    enrolled_branches: list[str]

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            username=identity.username,
            email=identity.email,
            role=identity.role,
            student_id=identity.student_id,
            enrolled_branches=sorted(identity.enrolled_branches),
        )
