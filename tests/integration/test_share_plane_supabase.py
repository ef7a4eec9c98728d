"""Integration tests for the share-plane Supabase repositories.

Run against a project with migrations/001_sharing_schema.sql applied.
Skipped unless SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are set.
"""

from __future__ import annotations

import asyncio
import os
import uuid

import httpx
import pytest

from share_plane.app.collaboration import CollaborationInvite, InviteStatus
from share_plane.app.db import (
    SupabaseClient,
    SupabaseInviteRepository,
    SupabaseShareLinkRepository,
)
from share_plane.app.resources import ResourceType
from share_plane.app.sharing import ShareLink
from share_plane.app.tokens import (
    CodeCollision,
    generate_invite_code,
    generate_share_code,
)


def _skip_without_creds():
    url = os.environ.get("SUPABASE_URL", "").strip()
    key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()
    if not url or not key:
        pytest.skip("SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY not set")
    return url, key


@pytest.mark.asyncio
async def test_real_share_link_lifecycle():
    url, key = _skip_without_creds()
    async with httpx.AsyncClient() as http:
        client = SupabaseClient(supabase_url=url, service_role_key=key, http_client=http)
        repo = SupabaseShareLinkRepository(client)
        owner_id = str(uuid.uuid4())

        link = await repo.create(ShareLink(
            owner_user_id=owner_id,
            share_code=generate_share_code(),
            resource_type=ResourceType.PHOTO,
            resource_id=str(uuid.uuid4()),
        ))
        try:
            fetched = await repo.get_by_code(link.share_code)
            assert fetched is not None
            assert fetched.id == link.id

            # Same code again is a collision, not a generic error.
            with pytest.raises(CodeCollision):
                await repo.create(ShareLink(
                    owner_user_id=owner_id,
                    share_code=link.share_code,
                    resource_type=ResourceType.PHOTO,
                    resource_id="other",
                ))

            counts = await asyncio.gather(
                *(repo.increment_access_count(link.id) for _ in range(10))
            )
            assert sorted(counts) == list(range(1, 11))

            assert await repo.update(link.id, "someone-else", {"allow_download": False}) is None
            updated = await repo.update(link.id, owner_id, {"allow_download": False})
            assert updated.allow_download is False
        finally:
            assert await repo.delete(link.id, owner_id) is True

        assert await repo.get(link.id) is None
        assert await repo.increment_access_count(link.id) is None


@pytest.mark.asyncio
async def test_real_invite_accept():
    url, key = _skip_without_creds()
    async with httpx.AsyncClient() as http:
        client = SupabaseClient(supabase_url=url, service_role_key=key, http_client=http)
        repo = SupabaseInviteRepository(client)
        collaborator_id = str(uuid.uuid4())

        invite = await repo.create(CollaborationInvite(
            owner_id=str(uuid.uuid4()),
            collaborator_email=f"{uuid.uuid4().hex[:8]}@example.com",
            resource_type=ResourceType.FOLDER,
            resource_id=str(uuid.uuid4()),
            invite_code=generate_invite_code(),
        ))
        try:
            accepted = await repo.accept(
                invite.id, collaborator_id, expected_collaborator_id=None,
            )
            assert accepted is not None
            assert accepted.status == InviteStatus.ACCEPTED
            assert accepted.collaborator_id == collaborator_id

            # Already accepted: the conditional write matches nothing.
            again = await repo.accept(
                invite.id, collaborator_id, expected_collaborator_id=None,
            )
            assert again is None
        finally:
            await client.delete("collaborations", {"id": invite.id})
