"""In-memory external store implementations for local development.

These are used when ENVIRONMENT=local and in tests. They satisfy the
ResourceStore, BlobStore and IdentityStore protocols but keep everything
in dicts (no persistence across restarts).
"""

from __future__ import annotations

import uuid
from typing import Any
from urllib.parse import quote, urlencode

from .protocols import UserRecord
from .resources import Resource


class InMemoryResourceStore:
    """Records for one resource type, keyed by id."""

    def __init__(self) -> None:
        self._resources: dict[str, Resource] = {}

    def add(
        self,
        owner_user_id: str,
        *,
        resource_id: str | None = None,
        blob_key: str | None = None,
        name: str | None = None,
        **attributes: Any,
    ) -> Resource:
        rid = resource_id or str(uuid.uuid4())
        record = {'id': rid, 'user_id': owner_user_id, **attributes}
        if name is not None:
            record['name'] = name
        resource = Resource(
            id=rid,
            owner_user_id=owner_user_id,
            blob_key=blob_key,
            name=name,
            attributes=record,
        )
        self._resources[rid] = resource
        return resource

    def remove(self, resource_id: str) -> None:
        self._resources.pop(resource_id, None)

    async def get_by_id(self, resource_id: str) -> Resource | None:
        return self._resources.get(resource_id)


class InMemoryBlobStore:
    """Issues fake signed URLs and records every issued URL."""

    def __init__(self, bucket: str = 'local', base_url: str = 'http://localhost/blobs') -> None:
        self._bucket = bucket
        self._base_url = base_url.rstrip('/')
        self.issued: list[dict[str, Any]] = []

    async def issue_read_url(
        self,
        key: str,
        *,
        expiry_seconds: int,
        attachment_filename: str | None = None,
    ) -> str:
        params = {'expires_in': expiry_seconds, 'sig': uuid.uuid4().hex}
        if attachment_filename:
            params['download'] = attachment_filename
        self.issued.append({
            'key': key,
            'expiry_seconds': expiry_seconds,
            'attachment_filename': attachment_filename,
        })
        return f'{self._base_url}/{self._bucket}/{quote(key)}?{urlencode(params)}'


class InMemoryIdentityStore:
    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}

    def add_user(self, email: str, user_id: str | None = None) -> UserRecord:
        user = UserRecord(id=user_id or str(uuid.uuid4()), email=email.strip().lower())
        self._users[user.id] = user
        return user

    async def get_user_by_id(self, user_id: str) -> UserRecord | None:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        normalized = email.strip().lower()
        for user in self._users.values():
            if user.email == normalized:
                return user
        return None
