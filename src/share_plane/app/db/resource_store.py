"""Supabase-backed ResourceStore, BlobStore and IdentityStore.

These are read-only views over tables and buckets owned by other services:
  - one resource table per resource type (files, folders, photos, ...)
  - one Storage bucket per blob-backed type
  - the users table

Nothing here writes to those tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlencode

from ..protocols import UserRecord
from ..resources import Resource, ResourceType
from .supabase_client import SupabaseClient


@dataclass(frozen=True, slots=True)
class ResourceColumns:
    """Column names used to read one resource table."""

    owner: str = "user_id"
    blob_key: str | None = None
    name: str | None = "name"


RESOURCE_COLUMNS: Mapping[ResourceType, ResourceColumns] = {
    ResourceType.FILE: ResourceColumns(blob_key="storage_key", name="file_name"),
    ResourceType.FOLDER: ResourceColumns(),
    ResourceType.PHOTO: ResourceColumns(blob_key="storage_key", name="file_name"),
    ResourceType.ALBUM: ResourceColumns(),
    ResourceType.RESUME: ResourceColumns(blob_key="storage_key", name="file_name"),
}


class SupabaseResourceStore:
    """ResourceStore over one PostgREST table."""

    def __init__(
        self,
        client: SupabaseClient,
        table: str,
        columns: ResourceColumns | None = None,
    ) -> None:
        self._client = client
        self._table = table
        self._columns = columns or ResourceColumns()

    async def get_by_id(self, resource_id: str) -> Resource | None:
        rows = await self._client.select(self._table, {"id": resource_id}, limit=1)
        if not rows:
            return None
        row = rows[0]
        cols = self._columns
        return Resource(
            id=str(row["id"]),
            owner_user_id=str(row.get(cols.owner) or ""),
            blob_key=row.get(cols.blob_key) if cols.blob_key else None,
            name=row.get(cols.name) if cols.name else None,
            attributes=row,
        )


class SupabaseStorageBlobStore:
    """BlobStore issuing Supabase Storage signed URLs for one bucket."""

    def __init__(self, client: SupabaseClient, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    async def issue_read_url(
        self,
        key: str,
        *,
        expiry_seconds: int,
        attachment_filename: str | None = None,
    ) -> str:
        url = await self._client.create_signed_url(
            self._bucket, key, expires_in=expiry_seconds,
        )
        if attachment_filename:
            # Storage sets Content-Disposition: attachment when download is present.
            sep = "&" if "?" in url else "?"
            url = f"{url}{sep}{urlencode({'download': attachment_filename})}"
        return url


class SupabaseIdentityStore:
    """IdentityStore over the users table (id, email)."""

    def __init__(self, client: SupabaseClient, table: str = "users") -> None:
        self._client = client
        self._table = table

    @staticmethod
    def _to_user(row: Mapping[str, Any]) -> UserRecord:
        return UserRecord(id=str(row["id"]), email=str(row.get("email") or "").lower())

    async def get_user_by_id(self, user_id: str) -> UserRecord | None:
        rows = await self._client.select(
            self._table, {"id": user_id}, columns="id,email", limit=1,
        )
        return self._to_user(rows[0]) if rows else None

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        # Emails are stored lower-cased, so an exact match is case-insensitive.
        rows = await self._client.select(
            self._table,
            {"email": email.strip().lower()},
            columns="id,email",
            limit=1,
        )
        return self._to_user(rows[0]) if rows else None
