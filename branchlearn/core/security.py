"""
Security utilities
"""
import re
import secrets

from passlib.context import CryptContext

# pbkdf2_sha256 stores the salt next to the digest ($pbkdf2-sha256$rounds$salt$hash)
# and verify() compares in constant time.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

STUDENT_ID_PREFIX = "STU"
STUDENT_ID_PATTERN = re.compile(r"^STU[0-9A-F]{10}$", re.IGNORECASE)


# ─── Password Hashing ─────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ─── Opaque tokens & identifiers ──────────────────────────────────────────────

def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def generate_student_id() -> str:
    """Prefix + 40 random bits. Collisions are not retried."""
    return f"{STUDENT_ID_PREFIX}{secrets.token_hex(5).upper()}"


def looks_like_student_id(value: str) -> bool:
    return bool(STUDENT_ID_PATTERN.match(value))
