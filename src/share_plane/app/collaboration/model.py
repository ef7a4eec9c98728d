"""Collaboration invite domain model and storage contract.

An invite binds a collaborator (by user id once known, always by email) to
a file, folder or album with a permission level. Status transitions:

    invited  ──accept──▶ accepted     (no account existed at invite time)
    pending  ──accept──▶ accepted     (account existed, collaborator_id set)

There is no way back from ``accepted`` and no revoke/decline state.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from ..errors import ConflictError
from ..resources import ResourceType
from ..tokens import CodeCollision


class InviteStatus(str, Enum):
    INVITED = 'invited'
    PENDING = 'pending'
    ACCEPTED = 'accepted'


class Permission(str, Enum):
    VIEW = 'view'
    EDIT = 'edit'
    ADMIN = 'admin'


OPEN_STATUSES = frozenset({InviteStatus.INVITED, InviteStatus.PENDING})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Domain model ──────────────────────────────────────────────────────


@dataclass
class CollaborationInvite:
    """Invite matching the collaborations schema."""

    owner_id: str
    collaborator_email: str
    resource_type: ResourceType
    resource_id: str
    invite_code: str
    collaborator_id: str | None = None
    permissions: Permission = Permission.VIEW
    status: InviteStatus = InviteStatus.INVITED
    message: str = ''
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'collaborator_id': self.collaborator_id,
            'collaborator_email': self.collaborator_email,
            'resource_type': self.resource_type.value,
            'resource_id': self.resource_id,
            'permissions': self.permissions.value,
            'status': self.status.value,
            'invite_code': self.invite_code,
            'message': self.message,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }


# ── Repository protocol ──────────────────────────────────────────────


class InviteRepository(Protocol):
    """Abstract collaboration invite storage.

    Implementations: InMemoryInviteRepository (local/testing),
    SupabaseInviteRepository (production).
    """

    async def create(self, invite: CollaborationInvite) -> CollaborationInvite:
        """Persist a new invite.

        Raises:
            CodeCollision: ``invite.invite_code`` is already taken.
            ConflictError: An invite already binds this collaborator to
                this resource.
        """
        ...

    async def get_by_code(self, invite_code: str) -> CollaborationInvite | None: ...

    async def exists_for_collaborator(
        self,
        resource_type: ResourceType,
        resource_id: str,
        collaborator_id: str,
    ) -> bool: ...

    async def accept(
        self,
        invite_id: str,
        collaborator_id: str,
        *,
        expected_collaborator_id: str | None,
    ) -> CollaborationInvite | None:
        """Bind ``collaborator_id`` and mark accepted.

        Conditional on the invite still being open and still bound to
        ``expected_collaborator_id``. Returns None when no row matched.
        """
        ...


# ── In-memory implementation ─────────────────────────────────────────


class InMemoryInviteRepository:
    """In-memory invite store for local dev and tests."""

    def __init__(self) -> None:
        self._invites: dict[str, CollaborationInvite] = {}
        self._codes: dict[str, str] = {}
        self._lock = asyncio.Lock()

    def _bound(
        self,
        resource_type: ResourceType,
        resource_id: str,
        collaborator_id: str,
        *,
        exclude_id: str | None = None,
    ) -> bool:
        return any(
            i.id != exclude_id
            and i.resource_type == resource_type
            and i.resource_id == resource_id
            and i.collaborator_id == collaborator_id
            for i in self._invites.values()
        )

    async def create(self, invite: CollaborationInvite) -> CollaborationInvite:
        async with self._lock:
            if invite.invite_code in self._codes:
                raise CodeCollision(invite.invite_code)
            if invite.collaborator_id and self._bound(
                invite.resource_type, invite.resource_id, invite.collaborator_id,
            ):
                raise ConflictError(
                    'A collaboration already exists with this user for this resource.',
                    code='collaboration_exists',
                )
            stored = replace(invite)
            self._invites[stored.id] = stored
            self._codes[stored.invite_code] = stored.id
            return replace(stored)

    async def get_by_code(self, invite_code: str) -> CollaborationInvite | None:
        invite_id = self._codes.get(invite_code)
        if invite_id is None:
            return None
        return replace(self._invites[invite_id])

    async def exists_for_collaborator(
        self,
        resource_type: ResourceType,
        resource_id: str,
        collaborator_id: str,
    ) -> bool:
        return self._bound(resource_type, resource_id, collaborator_id)

    async def accept(
        self,
        invite_id: str,
        collaborator_id: str,
        *,
        expected_collaborator_id: str | None,
    ) -> CollaborationInvite | None:
        async with self._lock:
            invite = self._invites.get(invite_id)
            if (
                invite is None
                or not invite.is_open
                or invite.collaborator_id != expected_collaborator_id
            ):
                return None
            if self._bound(
                invite.resource_type, invite.resource_id, collaborator_id,
                exclude_id=invite.id,
            ):
                raise ConflictError(
                    'A collaboration already exists with this user for this resource.',
                    code='collaboration_exists',
                )
            invite.collaborator_id = collaborator_id
            invite.status = InviteStatus.ACCEPTED
            invite.updated_at = _utcnow()
            return replace(invite)
