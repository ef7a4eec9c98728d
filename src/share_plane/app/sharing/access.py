"""Anonymous share-link endpoints.

  GET  /api/v1/share/{share_code}                      → lookup / read
  POST /api/v1/share/{share_code}/access?download=true  → access with password

Resolution:
  - Unknown codes → 404 share_not_found.
  - Expired links → 410 share_expired, before any password check.
  - Password-protected links: GET returns a ``password_required`` stub;
    POST with a missing or wrong password → 401.

Both paths sit under the auth guard's anonymous prefix; no identity is
required or consulted.
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from .service import ShareLinkManager


class AccessShareRequest(BaseModel):
    password: str | None = Field(default=None, max_length=256)


def create_share_access_router(manager: ShareLinkManager) -> APIRouter:
    router = APIRouter(tags=['share-access'])

    @router.get('/api/v1/share/{share_code}')
    async def get_share(share_code: str):
        result = await manager.get_share_link(share_code)
        return result.to_dict()

    @router.post('/api/v1/share/{share_code}/access')
    async def access_share(
        share_code: str,
        body: AccessShareRequest | None = None,
        download: bool = Query(default=False),
    ):
        item = await manager.access_shared_item(
            share_code,
            body.password if body else None,
            download=download,
        )
        return item.to_dict()

    return router
