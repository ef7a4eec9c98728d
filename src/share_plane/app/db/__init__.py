"""Supabase adapters for share-plane repositories and external stores."""

from .audit_emitter import SupabaseAuditEmitter
from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
)
from .invite_repo import SupabaseInviteRepository
from .resource_store import (
    RESOURCE_COLUMNS,
    ResourceColumns,
    SupabaseIdentityStore,
    SupabaseResourceStore,
    SupabaseStorageBlobStore,
)
from .share_repo import SupabaseShareLinkRepository
from .supabase_client import SupabaseClient

__all__ = [
    "RESOURCE_COLUMNS",
    "ResourceColumns",
    "SupabaseAuditEmitter",
    "SupabaseAuthError",
    "SupabaseClient",
    "SupabaseConflictError",
    "SupabaseError",
    "SupabaseIdentityStore",
    "SupabaseInviteRepository",
    "SupabaseNotFoundError",
    "SupabaseResourceStore",
    "SupabaseShareLinkRepository",
    "SupabaseStorageBlobStore",
]
