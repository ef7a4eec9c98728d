"""Supabase-backed InviteRepository.

Persists collaboration invites in the collaborations table. The unique
index on invite_code turns code reuse into a 409 (CodeCollision); the
partial unique index on (owner_id, resource_type, resource_id,
collaborator_id) turns a duplicate collaboration into a 409 (ConflictError).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from ..collaboration.model import (
    OPEN_STATUSES,
    CollaborationInvite,
    InviteStatus,
    Permission,
)
from ..errors import ConflictError
from ..resources import ResourceType
from ..tokens import CodeCollision
from .errors import SupabaseConflictError
from .share_repo import parse_timestamp
from .supabase_client import SupabaseClient


def row_to_invite(row: Mapping[str, Any]) -> CollaborationInvite:
    now = datetime.now(timezone.utc)
    return CollaborationInvite(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        collaborator_id=row.get("collaborator_id"),
        collaborator_email=row["collaborator_email"],
        resource_type=ResourceType(row["resource_type"]),
        resource_id=str(row["resource_id"]),
        permissions=Permission(row.get("permissions") or Permission.VIEW.value),
        status=InviteStatus(row["status"]),
        invite_code=row["invite_code"],
        message=row.get("message") or "",
        created_at=parse_timestamp(row.get("created_at")) or now,
        updated_at=parse_timestamp(row.get("updated_at")) or now,
    )


def _duplicate_collaboration() -> ConflictError:
    return ConflictError(
        "A collaboration already exists with this user for this resource.",
        code="collaboration_exists",
    )


class SupabaseInviteRepository:
    """InviteRepository backed by PostgREST."""

    def __init__(self, client: SupabaseClient, table: str = "collaborations") -> None:
        self._client = client
        self._table = table

    async def create(self, invite: CollaborationInvite) -> CollaborationInvite:
        row = {
            "id": invite.id,
            "owner_id": invite.owner_id,
            "collaborator_id": invite.collaborator_id,
            "collaborator_email": invite.collaborator_email,
            "resource_type": invite.resource_type.value,
            "resource_id": invite.resource_id,
            "permissions": invite.permissions.value,
            "status": invite.status.value,
            "invite_code": invite.invite_code,
            "message": invite.message,
        }
        try:
            rows = await self._client.insert(self._table, row)
        except SupabaseConflictError as exc:
            if exc.mentions("invite_code"):
                raise CodeCollision(invite.invite_code) from exc
            raise _duplicate_collaboration() from exc
        return row_to_invite(rows[0])

    async def get_by_code(self, invite_code: str) -> CollaborationInvite | None:
        rows = await self._client.select(self._table, {"invite_code": invite_code}, limit=1)
        return row_to_invite(rows[0]) if rows else None

    async def exists_for_collaborator(
        self,
        resource_type: ResourceType,
        resource_id: str,
        collaborator_id: str,
    ) -> bool:
        rows = await self._client.select(
            self._table,
            {
                "resource_type": resource_type.value,
                "resource_id": resource_id,
                "collaborator_id": collaborator_id,
            },
            columns="id",
            limit=1,
        )
        return bool(rows)

    async def accept(
        self,
        invite_id: str,
        collaborator_id: str,
        *,
        expected_collaborator_id: str | None,
    ) -> CollaborationInvite | None:
        filters: dict[str, Any] = {
            "id": invite_id,
            "status": ("in", sorted(s.value for s in OPEN_STATUSES)),
            "collaborator_id": (
                ("is", None) if expected_collaborator_id is None
                else ("eq", expected_collaborator_id)
            ),
        }
        try:
            rows = await self._client.update(
                self._table,
                filters,
                {
                    "collaborator_id": collaborator_id,
                    "status": InviteStatus.ACCEPTED.value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
            )
        except SupabaseConflictError as exc:
            raise _duplicate_collaboration() from exc
        return row_to_invite(rows[0]) if rows else None
