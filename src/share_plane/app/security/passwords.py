"""Share-link password hashing.

Only a salted PBKDF2-SHA256 hash (passlib modular crypt format) is
stored; the plaintext password is never persisted or returned.
"""

from __future__ import annotations

from passlib.context import CryptContext
from passlib.exc import UnknownHashError

ITERATIONS = 240_000

pwd_context = CryptContext(
    schemes=['pbkdf2_sha256'],
    deprecated='auto',
    pbkdf2_sha256__rounds=ITERATIONS,
)


def hash_password(password: str) -> str:
    """Hash a plaintext share password for storage."""
    if not password:
        raise ValueError('password must be non-empty')
    return pwd_context.hash(password)


def verify_password(password: str | None, stored: str) -> bool:
    """Check a presented password against a stored hash.

    Returns False for a missing password or a malformed stored value.
    """
    if not password or not stored:
        return False
    try:
        return pwd_context.verify(password, stored)
    except (UnknownHashError, ValueError):
        return False
