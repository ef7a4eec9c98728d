"""HTTP tests for share-link management and anonymous access endpoints.

Validates:
  - Owner endpoints require a bearer token; anonymous endpoints do not.
  - Create → read → read → delete → 404 flow with access counting.
  - Password-protected links: stub on GET, 401 on POST without password.
  - Expired links return 410 before any password check.
  - Error bodies carry error code, detail and request_id.
  - Request validation errors map to 400.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from share_plane_helpers import OTHER_ID, auth_headers


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url='http://test')


async def _create(client, **body) -> dict:
    payload = {'resource_type': 'photo', 'resource_id': 'P1', **body}
    resp = await client.post('/api/v1/shares', json=payload, headers=auth_headers())
    assert resp.status_code == 201, resp.text
    return resp.json()


# =====================================================================
# Auth boundary
# =====================================================================


class TestAuthBoundary:
    @pytest.mark.asyncio
    async def test_create_requires_token(self, app, photo):
        async with _client(app) as client:
            resp = await client.post(
                '/api/v1/shares', json={'resource_type': 'photo', 'resource_id': 'P1'},
            )
        assert resp.status_code == 401
        assert resp.json()['code'] == 'no_credentials'

    @pytest.mark.asyncio
    async def test_invalid_token(self, app):
        async with _client(app) as client:
            resp = await client.get(
                '/api/v1/shares', headers={'Authorization': 'Bearer not-a-jwt'},
            )
        assert resp.status_code == 401
        assert resp.json()['code'] == 'invalid_token'

    @pytest.mark.asyncio
    async def test_anonymous_access_needs_no_token(self, app, photo):
        async with _client(app) as client:
            link = await _create(client)
            resp = await client.get(f"/api/v1/share/{link['share_code']}")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_public(self, app):
        async with _client(app) as client:
            resp = await client.get('/health')
        assert resp.status_code == 200
        assert resp.json() == {'status': 'ok', 'environment': 'local'}


# =====================================================================
# End-to-end flow
# =====================================================================


class TestShareFlow:
    @pytest.mark.asyncio
    async def test_create_read_delete(self, app, photo):
        async with _client(app) as client:
            link = await _create(client)
            assert link['share_url'].endswith(f"/share/{link['share_code']}")
            assert link['access_count'] == 0
            assert 'password_hash' not in link

            first = await client.get(f"/api/v1/share/{link['share_code']}")
            second = await client.get(f"/api/v1/share/{link['share_code']}")
            assert first.json()['share_link']['access_count'] == 1
            assert second.json()['share_link']['access_count'] == 2
            assert first.json()['resource']['id'] == 'P1'

            resp = await client.delete(f"/api/v1/shares/{link['id']}", headers=auth_headers())
            assert resp.status_code == 200
            assert resp.json() == {'id': link['id'], 'deleted': True}

            gone = await client.get(f"/api/v1/share/{link['share_code']}")
        assert gone.status_code == 404
        assert gone.json()['error'] == 'share_not_found'

    @pytest.mark.asyncio
    async def test_access_returns_presigned_url(self, app, photo):
        async with _client(app) as client:
            link = await _create(client)
            resp = await client.post(
                f"/api/v1/share/{link['share_code']}/access",
                params={'download': 'true'},
            )
        assert resp.status_code == 200
        body = resp.json()
        assert 'download=beach.jpg' in body['presigned_url']
        assert body['share_link']['access_count'] == 1

    @pytest.mark.asyncio
    async def test_anonymous_responses_hide_owner(self, app, photo):
        async with _client(app) as client:
            link = await _create(client)
            viewed = await client.get(f"/api/v1/share/{link['share_code']}")
            accessed = await client.post(f"/api/v1/share/{link['share_code']}/access")
        for resp in (viewed, accessed):
            assert resp.status_code == 200
            share_link = resp.json()['share_link']
            assert 'owner_user_id' not in share_link
            assert 'updated_at' not in share_link
            assert share_link['share_code'] == link['share_code']

    @pytest.mark.asyncio
    async def test_list_and_update(self, app, photo):
        async with _client(app) as client:
            link = await _create(client)
            await _create(client)

            listing = await client.get(
                '/api/v1/shares', params={'limit': 1}, headers=auth_headers(),
            )
            assert listing.status_code == 200
            page = listing.json()
            assert page['count'] == 1
            assert page['next_token']

            rest = await client.get(
                '/api/v1/shares',
                params={'limit': 1, 'next_token': page['next_token']},
                headers=auth_headers(),
            )
            assert rest.json()['count'] == 1
            assert rest.json()['next_token'] is None

            patched = await client.patch(
                f"/api/v1/shares/{link['id']}",
                json={'allow_download': False},
                headers=auth_headers(),
            )
        assert patched.status_code == 200
        assert patched.json()['allow_download'] is False
        assert patched.json()['expires_at'] is None


# =====================================================================
# Password and expiry
# =====================================================================


class TestPasswordAndExpiry:
    @pytest.mark.asyncio
    async def test_password_protected_flow(self, app, share_repo, photo):
        async with _client(app) as client:
            link = await _create(client, password='s3cret')
            code = link['share_code']

            stub = await client.get(f'/api/v1/share/{code}')
            assert stub.status_code == 200
            assert stub.json()['password_required'] is True
            assert 'resource' not in stub.json()

            missing = await client.post(f'/api/v1/share/{code}/access')
            assert missing.status_code == 401
            assert missing.json()['error'] == 'password_required'
            assert missing.headers['www-authenticate'] == 'Password'

            wrong = await client.post(f'/api/v1/share/{code}/access', json={'password': 'nope'})
            assert wrong.status_code == 401
            assert wrong.json()['error'] == 'invalid_password'

            assert (await share_repo.get(link['id'])).access_count == 0

            ok = await client.post(f'/api/v1/share/{code}/access', json={'password': 's3cret'})
        assert ok.status_code == 200
        assert ok.json()['share_link']['access_count'] == 1

    @pytest.mark.asyncio
    async def test_expired_link_is_gone(self, app, photo):
        past = (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat()
        async with _client(app) as client:
            link = await _create(client, expires_at=past, password='pw')
            resp = await client.post(
                f"/api/v1/share/{link['share_code']}/access", json={'password': 'pw'},
            )
        assert resp.status_code == 410
        assert resp.json()['error'] == 'share_expired'


# =====================================================================
# Errors
# =====================================================================


class TestErrors:
    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, app, photo):
        async with _client(app) as client:
            link = await _create(client)
            resp = await client.delete(
                f"/api/v1/shares/{link['id']}",
                headers=auth_headers(OTHER_ID, 'other@example.com'),
            )
        assert resp.status_code == 403
        assert resp.json()['error'] == 'forbidden'

    @pytest.mark.asyncio
    async def test_other_user_cannot_share(self, app, photo):
        async with _client(app) as client:
            resp = await client.post(
                '/api/v1/shares',
                json={'resource_type': 'photo', 'resource_id': 'P1'},
                headers=auth_headers(OTHER_ID, 'other@example.com'),
            )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_unsupported_type(self, app):
        async with _client(app) as client:
            resp = await client.post(
                '/api/v1/shares',
                json={'resource_type': 'video', 'resource_id': 'V1'},
                headers=auth_headers(),
            )
        assert resp.status_code == 400
        assert resp.json()['error'] == 'unsupported_resource_type'

    @pytest.mark.asyncio
    async def test_missing_field_is_validation_error(self, app):
        async with _client(app) as client:
            resp = await client.post(
                '/api/v1/shares',
                json={'resource_type': 'photo'},
                headers={**auth_headers(), 'X-Request-ID': 'req-test-0001'},
            )
        assert resp.status_code == 400
        body = resp.json()
        assert body['error'] == 'validation_error'
        assert 'resource_id' in body['detail']
        assert body['request_id'] == 'req-test-0001'

    @pytest.mark.asyncio
    async def test_unknown_update_field_rejected(self, app, photo):
        async with _client(app) as client:
            link = await _create(client)
            resp = await client.patch(
                f"/api/v1/shares/{link['id']}",
                json={'allow_download': 'sometimes'},
                headers=auth_headers(),
            )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_share_code(self, app):
        async with _client(app) as client:
            resp = await client.get('/api/v1/share/NOPE1234')
        assert resp.status_code == 404
        assert resp.json()['request_id']
