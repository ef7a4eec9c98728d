"""Supabase-backed ShareLinkRepository.

Persists share links in the share_links table via PostgREST.

Invariants enforced by the schema (see migrations/001_sharing_schema.sql):
  - share_code is unique; a 409 on insert mentioning it is a CodeCollision.
  - access_count only changes through increment_share_link_access(), a
    single UPDATE ... RETURNING, never read-modify-write from here.
  - update/delete filter on id AND owner_user_id.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from ..resources import ResourceType
from ..sharing.model import MUTABLE_FIELDS, ShareLink
from ..tokens import CodeCollision
from .errors import SupabaseConflictError
from .supabase_client import SupabaseClient

INCREMENT_FUNCTION = "increment_share_link_access"


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    # PostgREST emits "+00:00"; older drivers emit a trailing "Z".
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def row_to_link(row: Mapping[str, Any]) -> ShareLink:
    return ShareLink(
        id=str(row["id"]),
        owner_user_id=str(row["owner_user_id"]),
        share_code=row["share_code"],
        resource_type=ResourceType(row["resource_type"]),
        resource_id=str(row["resource_id"]),
        expires_at=parse_timestamp(row.get("expires_at")),
        password_hash=row.get("password_hash"),
        allow_download=bool(row.get("allow_download", True)),
        access_count=int(row.get("access_count") or 0),
        created_at=parse_timestamp(row.get("created_at")) or datetime.now(timezone.utc),
        updated_at=parse_timestamp(row.get("updated_at")) or datetime.now(timezone.utc),
    )


def _to_column(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SupabaseShareLinkRepository:
    """ShareLinkRepository backed by PostgREST."""

    def __init__(self, client: SupabaseClient, table: str = "share_links") -> None:
        self._client = client
        self._table = table

    async def create(self, link: ShareLink) -> ShareLink:
        row = {
            "id": link.id,
            "owner_user_id": link.owner_user_id,
            "share_code": link.share_code,
            "resource_type": link.resource_type.value,
            "resource_id": link.resource_id,
            "expires_at": link.expires_at.isoformat() if link.expires_at else None,
            "password_hash": link.password_hash,
            "allow_download": link.allow_download,
            "access_count": 0,
        }
        try:
            rows = await self._client.insert(self._table, row)
        except SupabaseConflictError as exc:
            if exc.mentions("share_code"):
                raise CodeCollision(link.share_code) from exc
            raise
        return row_to_link(rows[0])

    async def get(self, link_id: str) -> ShareLink | None:
        rows = await self._client.select(self._table, {"id": link_id}, limit=1)
        return row_to_link(rows[0]) if rows else None

    async def get_by_code(self, share_code: str) -> ShareLink | None:
        rows = await self._client.select(self._table, {"share_code": share_code}, limit=1)
        return row_to_link(rows[0]) if rows else None

    async def update(
        self, link_id: str, owner_user_id: str, changes: Mapping[str, Any],
    ) -> ShareLink | None:
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Immutable share link fields: {sorted(unknown)}")
        data = {name: _to_column(value) for name, value in changes.items()}
        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        rows = await self._client.update(
            self._table,
            {"id": link_id, "owner_user_id": owner_user_id},
            data,
        )
        return row_to_link(rows[0]) if rows else None

    async def delete(self, link_id: str, owner_user_id: str) -> bool:
        rows = await self._client.delete(
            self._table,
            {"id": link_id, "owner_user_id": owner_user_id},
        )
        return len(rows) > 0

    async def list_for_owner(
        self,
        owner_user_id: str,
        *,
        resource_type: ResourceType | None = None,
        resource_id: str | None = None,
        limit: int,
        offset: int = 0,
    ) -> list[ShareLink]:
        filters: dict[str, Any] = {"owner_user_id": owner_user_id}
        if resource_type is not None:
            filters["resource_type"] = resource_type.value
        if resource_id is not None:
            filters["resource_id"] = resource_id
        rows = await self._client.select(
            self._table,
            filters,
            limit=limit,
            offset=offset,
            order="created_at.desc,id.desc",
        )
        return [row_to_link(row) for row in rows]

    async def increment_access_count(self, link_id: str) -> int | None:
        result = await self._client.rpc(INCREMENT_FUNCTION, {"link_id": link_id})
        if result is None:
            return None
        return int(result)
