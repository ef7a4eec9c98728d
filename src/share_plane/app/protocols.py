"""External collaborator protocols for dependency injection.

These protocols define the contracts of the stores this service reads but
does not own. Concrete implementations (InMemory for local dev and tests,
Supabase for non-local) must satisfy them; the app factory accepts any
implementation that matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .resources import Resource


@dataclass(frozen=True, slots=True)
class UserRecord:
    """Identity-store user, reduced to what sharing needs."""

    id: str
    email: str


@runtime_checkable
class ResourceStore(Protocol):
    """Read access to one resource type's records."""

    async def get_by_id(self, resource_id: str) -> Resource | None: ...


@runtime_checkable
class BlobStore(Protocol):
    """Time-limited read URLs for stored objects."""

    async def issue_read_url(
        self,
        key: str,
        *,
        expiry_seconds: int,
        attachment_filename: str | None = None,
    ) -> str: ...


@runtime_checkable
class IdentityStore(Protocol):
    """User lookup by id or email."""

    async def get_user_by_id(self, user_id: str) -> UserRecord | None: ...
    async def get_user_by_email(self, email: str) -> UserRecord | None: ...
