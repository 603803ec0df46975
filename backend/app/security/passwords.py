"""Password hashing for stored user credentials."""

from __future__ import annotations

from passlib.context import CryptContext

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Check a plaintext password; malformed hashes simply fail."""
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False
