"""Public code generation for share links and collaboration invites.

Codes are drawn with ``secrets`` from a fixed ``[A-Za-z0-9]`` alphabet.
Uniqueness is enforced by the repository (unique index / dict key); a
repository that finds the code taken raises ``CodeCollision`` and
``insert_with_unique_code`` draws a fresh code, up to ``MAX_CODE_ATTEMPTS``
times, before giving up with ``InternalError``.
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Awaitable, Callable, TypeVar

from .errors import InternalError

logger = logging.getLogger(__name__)

T = TypeVar('T')

CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
SHARE_CODE_LENGTH = 8
INVITE_CODE_LENGTH = 10
MAX_CODE_ATTEMPTS = 5


class CodeCollision(Exception):
    """The generated public code is already in use."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__('public code already in use')


def generate_code(length: int) -> str:
    """Return a random code of ``length`` characters from CODE_ALPHABET."""
    if length <= 0:
        raise ValueError('length must be positive')
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_share_code() -> str:
    return generate_code(SHARE_CODE_LENGTH)


def generate_invite_code() -> str:
    return generate_code(INVITE_CODE_LENGTH)


def is_valid_code(value: str, length: int) -> bool:
    return len(value) == length and all(c in CODE_ALPHABET for c in value)


async def insert_with_unique_code(
    insert: Callable[[str], Awaitable[T]],
    generate: Callable[[], str],
    *,
    attempts: int = MAX_CODE_ATTEMPTS,
) -> T:
    """Generate a code and insert, retrying on collision.

    Args:
        insert: Coroutine factory persisting a record with the given code.
            Must raise CodeCollision when the code is already taken.
        generate: Code generator.
        attempts: Maximum number of codes to try.

    Raises:
        InternalError: Every attempt collided.
    """
    for attempt in range(1, attempts + 1):
        code = generate()
        try:
            return await insert(code)
        except CodeCollision:
            logger.warning('Public code collision (attempt %d/%d)', attempt, attempts)
    raise InternalError(
        f'Could not allocate a unique code after {attempts} attempts',
        code='code_allocation_failed',
    )
