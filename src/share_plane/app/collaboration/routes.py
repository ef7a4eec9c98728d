"""Collaboration invite endpoints.

Response contracts:
  POST /api/v1/collaborations                       → 201 { ...invite, invite_url }
  POST /api/v1/collaborations/accept/{invite_code}  → 200 { ...invite }
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from share_plane.app.security.auth_guard import get_auth_identity
from share_plane.app.security.token_verify import AuthIdentity

from .service import MAX_MESSAGE_LENGTH, CollaborationManager, normalize_email


class InviteCollaboratorRequest(BaseModel):
    resource_type: str = Field(..., min_length=1)
    resource_id: str = Field(..., min_length=1, max_length=256)
    email: str = Field(..., min_length=3, max_length=320)
    permissions: str | None = None
    message: str | None = Field(default=None, max_length=MAX_MESSAGE_LENGTH)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


def create_collaboration_router(manager: CollaborationManager) -> APIRouter:
    """Create the invite/accept router.

    Args:
        manager: Collaboration manager wired to repository, resolver and
            identity store.
    """
    router = APIRouter(tags=['collaborations'])

    @router.post('/api/v1/collaborations', status_code=201)
    async def invite_collaborator(
        body: InviteCollaboratorRequest,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        view = await manager.invite_collaborator(
            identity.user_id,
            body.resource_type,
            body.resource_id,
            body.email,
            permissions=body.permissions,
            message=body.message,
        )
        return view.to_dict()

    @router.post('/api/v1/collaborations/accept/{invite_code}')
    async def accept_invite(
        invite_code: str,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        invite = await manager.accept_collaboration_invite(identity.user_id, invite_code)
        return invite.to_dict()

    return router
