"""Tests for public share and invite code generation."""

from __future__ import annotations

import pytest

from share_plane.app.errors import InternalError
from share_plane.app.tokens import (
    CODE_ALPHABET,
    INVITE_CODE_LENGTH,
    SHARE_CODE_LENGTH,
    CodeCollision,
    generate_code,
    generate_invite_code,
    generate_share_code,
    insert_with_unique_code,
    is_valid_code,
)


class TestGenerateCode:
    def test_share_code_shape(self):
        code = generate_share_code()
        assert len(code) == SHARE_CODE_LENGTH == 8
        assert all(c in CODE_ALPHABET for c in code)

    def test_invite_code_shape(self):
        code = generate_invite_code()
        assert len(code) == INVITE_CODE_LENGTH == 10
        assert is_valid_code(code, INVITE_CODE_LENGTH)

    def test_alphabet_is_alphanumeric(self):
        assert len(CODE_ALPHABET) == 62
        assert CODE_ALPHABET.isalnum()

    def test_codes_do_not_repeat(self):
        codes = {generate_share_code() for _ in range(1000)}
        assert len(codes) == 1000

    def test_non_positive_length(self):
        with pytest.raises(ValueError):
            generate_code(0)

    @pytest.mark.parametrize('value', ['short', 'ABCDEFG!', 'ABCDEFGHI', 'ABC DEFG'])
    def test_invalid_codes(self, value):
        assert is_valid_code(value, SHARE_CODE_LENGTH) is False


class TestInsertWithUniqueCode:
    @pytest.mark.asyncio
    async def test_retries_after_collision(self):
        generated = iter(['TAKEN001', 'TAKEN002', 'FREE0001'])
        attempts = []

        async def insert(code):
            attempts.append(code)
            if code.startswith('TAKEN'):
                raise CodeCollision(code)
            return code

        result = await insert_with_unique_code(insert, lambda: next(generated))
        assert result == 'FREE0001'
        assert attempts == ['TAKEN001', 'TAKEN002', 'FREE0001']

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self):
        calls = 0

        async def insert(code):
            nonlocal calls
            calls += 1
            raise CodeCollision(code)

        with pytest.raises(InternalError) as exc:
            await insert_with_unique_code(insert, generate_share_code, attempts=3)
        assert exc.value.code == 'code_allocation_failed'
        assert calls == 3

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        async def insert(code):
            raise RuntimeError('db down')

        with pytest.raises(RuntimeError):
            await insert_with_unique_code(insert, generate_share_code)
