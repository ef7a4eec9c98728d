"""Share-link management API endpoints (owner only).

  POST   /api/v1/shares             → create share link (201)
  GET    /api/v1/shares             → list the caller's share links
  PATCH  /api/v1/shares/{link_id}   → partial update
  DELETE /api/v1/shares/{link_id}   → hard delete

Auth contract:
  - All endpoints require an authenticated identity (AuthIdentity).
  - Only the link owner may update or delete it; others get 403.

Password handling:
  - A password may be set on create or update; it is hashed before
    storage and never returned. Responses expose ``password_protected``.

This module provides:
  ``create_share_router``: FastAPI router factory with injected deps.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from share_plane.app.security.auth_guard import get_auth_identity
from share_plane.app.security.token_verify import AuthIdentity

from .service import ShareLinkManager


# ── Request schemas ──────────────────────────────────────────────────


class CreateShareRequest(BaseModel):
    resource_type: str = Field(..., min_length=1)
    resource_id: str = Field(..., min_length=1, max_length=256)
    expires_at: datetime | None = None
    password: str | None = Field(default=None, max_length=256)
    allow_download: bool = True


class UpdateShareRequest(BaseModel):
    """Partial update; only fields present in the body are applied.

    ``null`` for ``expires_at`` or ``password`` removes it.
    """

    expires_at: datetime | None = None
    password: str | None = Field(default=None, max_length=256)
    allow_download: bool | None = None


# ── Route factory ────────────────────────────────────────────────────


def create_share_router(manager: ShareLinkManager) -> APIRouter:
    """Create share-link management router.

    Args:
        manager: Share-link manager wired to repository and resolver.
    """
    router = APIRouter(tags=['share-links'])

    @router.post('/api/v1/shares', status_code=201)
    async def create_share(
        body: CreateShareRequest,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        view = await manager.create_share_link(
            identity.user_id,
            body.resource_type,
            body.resource_id,
            expires_at=body.expires_at,
            password=body.password,
            allow_download=body.allow_download,
        )
        return view.to_dict()

    @router.get('/api/v1/shares')
    async def list_shares(
        resource_type: str | None = Query(default=None),
        resource_id: str | None = Query(default=None),
        limit: int | None = Query(default=None),
        next_token: str | None = Query(default=None),
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        page = await manager.list_share_links(
            identity.user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            limit=limit,
            next_token=next_token,
        )
        return page.to_dict()

    @router.patch('/api/v1/shares/{link_id}')
    async def update_share(
        link_id: str,
        body: UpdateShareRequest,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        view = await manager.update_share_link(
            identity.user_id,
            link_id,
            body.model_dump(exclude_unset=True),
        )
        return view.to_dict()

    @router.delete('/api/v1/shares/{link_id}')
    async def delete_share(
        link_id: str,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        await manager.delete_share_link(identity.user_id, link_id)
        return {'id': link_id, 'deleted': True}

    return router
