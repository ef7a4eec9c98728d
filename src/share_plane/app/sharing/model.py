"""Share-link domain model and storage contract.

A share link grants anonymous, time-limited, optionally password-protected
read access to one resource, addressed by an 8-character public share code.

Security invariant:
  Only a salted hash of the share password is stored. The plaintext is
  accepted on create/update and never persisted or echoed back.

This module provides:
  1. ``ShareLink``: domain object matching the share_links table.
  2. ``ShareLinkRepository``: abstract storage protocol.
  3. ``InMemoryShareLinkRepository``: local/test implementation.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

from ..resources import ResourceType
from ..tokens import CodeCollision

# Fields an owner may change after creation.
MUTABLE_FIELDS = frozenset({'expires_at', 'password_hash', 'allow_download'})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Domain model ──────────────────────────────────────────────────────


@dataclass
class ShareLink:
    """Share link matching the share_links schema.

    Attributes:
        id: System-generated identity (uuid4 string).
        owner_user_id: User who created the link and owns the resource.
        share_code: Public 8-char code, unique system-wide.
        resource_type: Type tag of the shared resource.
        resource_id: Shared resource id.
        expires_at: When the link becomes inert; None never expires.
        password_hash: Salted hash; None means no password is required.
        allow_download: Whether accesses may request an attachment URL.
        access_count: Successful anonymous accesses, never decreases.
    """

    owner_user_id: str
    share_code: str
    resource_type: ResourceType
    resource_id: str
    expires_at: datetime | None = None
    password_hash: str | None = None
    allow_download: bool = True
    access_count: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or _utcnow()) > self.expires_at

    @property
    def password_required(self) -> bool:
        return self.password_hash is not None

    def to_dict(self) -> dict[str, Any]:
        """Public representation; the password hash is never included."""
        return {
            'id': self.id,
            'owner_user_id': self.owner_user_id,
            'share_code': self.share_code,
            'resource_type': self.resource_type.value,
            'resource_id': self.resource_id,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'password_protected': self.password_required,
            'allow_download': self.allow_download,
            'access_count': self.access_count,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Representation for anonymous viewers; omits the owner."""
        return {
            'id': self.id,
            'share_code': self.share_code,
            'resource_type': self.resource_type.value,
            'resource_id': self.resource_id,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'allow_download': self.allow_download,
            'access_count': self.access_count,
            'created_at': self.created_at.isoformat(),
        }


# ── Repository protocol ──────────────────────────────────────────────


class ShareLinkRepository(Protocol):
    """Abstract share link storage.

    Implementations: InMemoryShareLinkRepository (local/testing),
    SupabaseShareLinkRepository (production).
    """

    async def create(self, link: ShareLink) -> ShareLink:
        """Persist a new link.

        Raises:
            CodeCollision: ``link.share_code`` is already taken.
        """
        ...

    async def get(self, link_id: str) -> ShareLink | None: ...

    async def get_by_code(self, share_code: str) -> ShareLink | None: ...

    async def update(
        self, link_id: str, owner_user_id: str, changes: Mapping[str, Any],
    ) -> ShareLink | None:
        """Apply ``changes`` only if the link exists and is owned by
        ``owner_user_id``. Returns None when no row matched."""
        ...

    async def delete(self, link_id: str, owner_user_id: str) -> bool: ...

    async def list_for_owner(
        self,
        owner_user_id: str,
        *,
        resource_type: ResourceType | None = None,
        resource_id: str | None = None,
        limit: int,
        offset: int = 0,
    ) -> list[ShareLink]:
        """Owner's links, newest first."""
        ...

    async def increment_access_count(self, link_id: str) -> int | None:
        """Atomically add one to ``access_count`` and return the new value.

        Returns None if the link no longer exists.
        """
        ...


# ── In-memory implementation ─────────────────────────────────────────


class InMemoryShareLinkRepository:
    """In-memory share link store for local dev and tests.

    Returned links are copies, so callers never observe concurrent writes
    through a shared object.
    """

    def __init__(self) -> None:
        self._links: dict[str, ShareLink] = {}
        self._codes: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def create(self, link: ShareLink) -> ShareLink:
        async with self._lock:
            if link.share_code in self._codes:
                raise CodeCollision(link.share_code)
            stored = replace(link)
            self._links[stored.id] = stored
            self._codes[stored.share_code] = stored.id
            return replace(stored)

    async def get(self, link_id: str) -> ShareLink | None:
        link = self._links.get(link_id)
        return replace(link) if link else None

    async def get_by_code(self, share_code: str) -> ShareLink | None:
        link_id = self._codes.get(share_code)
        return await self.get(link_id) if link_id else None

    async def update(
        self, link_id: str, owner_user_id: str, changes: Mapping[str, Any],
    ) -> ShareLink | None:
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f'Immutable share link fields: {sorted(unknown)}')
        async with self._lock:
            link = self._links.get(link_id)
            if link is None or link.owner_user_id != owner_user_id:
                return None
            for name, value in changes.items():
                setattr(link, name, value)
            link.updated_at = _utcnow()
            return replace(link)

    async def delete(self, link_id: str, owner_user_id: str) -> bool:
        async with self._lock:
            link = self._links.get(link_id)
            if link is None or link.owner_user_id != owner_user_id:
                return False
            del self._links[link_id]
            self._codes.pop(link.share_code, None)
            return True

    async def list_for_owner(
        self,
        owner_user_id: str,
        *,
        resource_type: ResourceType | None = None,
        resource_id: str | None = None,
        limit: int,
        offset: int = 0,
    ) -> list[ShareLink]:
        result = []
        for link in self._links.values():
            if link.owner_user_id != owner_user_id:
                continue
            if resource_type is not None and link.resource_type != resource_type:
                continue
            if resource_id is not None and link.resource_id != resource_id:
                continue
            result.append(link)
        result.sort(key=lambda l: (l.created_at, l.id), reverse=True)
        return [replace(l) for l in result[offset:offset + limit]]

    async def increment_access_count(self, link_id: str) -> int | None:
        async with self._lock:
            link = self._links.get(link_id)
            if link is None:
                return None
            link.access_count += 1
            return link.access_count
