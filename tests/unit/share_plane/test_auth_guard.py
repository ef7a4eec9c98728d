"""Tests for bearer token verification and the auth guard middleware.

Validates:
  - HS256 tokens verify and yield user id and lower-cased email.
  - Expired, wrong-audience and wrong-secret tokens are rejected.
  - /api/v1/share/ and /health are exempt; owner routes need a token.
"""

from __future__ import annotations

import time

import jwt
import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from share_plane.app.security import (
    AuthGuardMiddleware,
    AuthIdentity,
    StaticKeyProvider,
    TokenVerificationError,
    TokenVerifier,
    create_token_verifier,
    get_auth_identity,
)

from share_plane_helpers import TEST_AUDIENCE, TEST_SECRET, make_token


def _token(secret: str = TEST_SECRET, **overrides) -> str:
    payload = {
        'sub': 'user-1',
        'email': 'Someone@Example.com',
        'aud': TEST_AUDIENCE,
        'exp': int(time.time()) + 3600,
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm='HS256')


def _verifier() -> TokenVerifier:
    return TokenVerifier(StaticKeyProvider(TEST_SECRET), TEST_AUDIENCE, ['HS256'])


def _create_test_app(require_auth: bool = True) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        AuthGuardMiddleware, token_verifier=_verifier(), require_auth=require_auth,
    )

    @app.get('/health')
    async def health():
        return {'status': 'ok'}

    @app.get('/api/v1/share/{code}')
    async def share(code: str):
        return {'code': code}

    @app.get('/healthz-admin')
    async def lookalike():
        return {'status': 'private'}

    @app.get('/api/v1/shares')
    async def shares(identity: AuthIdentity = Depends(get_auth_identity)):
        return {'user_id': identity.user_id, 'email': identity.email}

    return app


# =====================================================================
# TokenVerifier
# =====================================================================


class TestTokenVerifier:
    def test_valid_token(self):
        identity = _verifier().verify(_token())
        assert identity.user_id == 'user-1'
        assert identity.email == 'someone@example.com'

    @pytest.mark.parametrize('token,code', [
        ('', 'empty_token'),
        (_token(exp=int(time.time()) - 10), 'token_expired'),
        (_token(aud='other'), 'invalid_audience'),
        (_token(secret='another-secret-of-sufficient-length-1234'), 'invalid_token'),
    ])
    def test_rejected(self, token, code):
        with pytest.raises(TokenVerificationError) as exc:
            _verifier().verify(token)
        assert exc.value.code == code

    def test_missing_sub(self):
        token = jwt.encode(
            {'aud': TEST_AUDIENCE, 'exp': int(time.time()) + 60}, TEST_SECRET, algorithm='HS256',
        )
        with pytest.raises(TokenVerificationError):
            _verifier().verify(token)

    def test_factory_prefers_secret(self):
        verifier = create_token_verifier(jwt_secret=TEST_SECRET, supabase_url='https://x.test')
        assert verifier.verify(make_token('user-9')).user_id == 'user-9'

    def test_factory_requires_source(self):
        with pytest.raises(ValueError):
            create_token_verifier()


# =====================================================================
# AuthGuardMiddleware
# =====================================================================


class TestAuthGuard:
    @pytest.mark.asyncio
    async def test_exempt_paths(self):
        transport = ASGITransport(app=_create_test_app())
        async with AsyncClient(transport=transport, base_url='http://test') as client:
            assert (await client.get('/health')).status_code == 200
            resp = await client.get('/api/v1/share/AbCd1234')
        assert resp.status_code == 200
        assert resp.json() == {'code': 'AbCd1234'}

    @pytest.mark.asyncio
    async def test_exempt_prefix_matches_whole_segment(self):
        transport = ASGITransport(app=_create_test_app())
        async with AsyncClient(transport=transport, base_url='http://test') as client:
            resp = await client.get('/healthz-admin')
        assert resp.status_code == 401
        assert resp.json()['code'] == 'no_credentials'

    @pytest.mark.asyncio
    async def test_missing_token(self):
        transport = ASGITransport(app=_create_test_app())
        async with AsyncClient(transport=transport, base_url='http://test') as client:
            resp = await client.get('/api/v1/shares')
        assert resp.status_code == 401
        assert resp.json()['code'] == 'no_credentials'
        assert resp.headers['www-authenticate'] == 'Bearer'

    @pytest.mark.asyncio
    async def test_valid_token(self):
        transport = ASGITransport(app=_create_test_app())
        async with AsyncClient(transport=transport, base_url='http://test') as client:
            resp = await client.get(
                '/api/v1/shares', headers={'Authorization': f'Bearer {_token()}'},
            )
        assert resp.status_code == 200
        assert resp.json() == {'user_id': 'user-1', 'email': 'someone@example.com'}

    @pytest.mark.asyncio
    async def test_expired_token(self):
        transport = ASGITransport(app=_create_test_app())
        expired = _token(exp=int(time.time()) - 10)
        async with AsyncClient(transport=transport, base_url='http://test') as client:
            resp = await client.get(
                '/api/v1/shares', headers={'Authorization': f'Bearer {expired}'},
            )
        assert resp.status_code == 401
        assert resp.json()['code'] == 'token_expired'

    @pytest.mark.asyncio
    async def test_optional_auth_falls_back_to_dependency(self):
        transport = ASGITransport(app=_create_test_app(require_auth=False))
        async with AsyncClient(transport=transport, base_url='http://test') as client:
            resp = await client.get('/api/v1/shares')
        assert resp.status_code == 401
        assert resp.json()['detail']['code'] == 'no_credentials'
