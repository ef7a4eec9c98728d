"""Supabase client error hierarchy.

Kept small and free of httpx types so repositories can raise and catch
them without leaking responses (or the service role key).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SupabaseError(Exception):
    """Base error for PostgREST and Storage requests."""

    status_code: int
    message: str
    code: str | None = None
    details: str | None = None
    hint: str | None = None

    def __str__(self) -> str:
        bits: list[str] = [f"SupabaseError(status={self.status_code})", self.message]
        if self.code:
            bits.append(f"code={self.code}")
        if self.details:
            bits.append(f"details={self.details}")
        return " ".join(bits)

    def mentions(self, needle: str) -> bool:
        """True if the message, details or hint mention ``needle``."""
        return any(needle in (part or "") for part in (self.message, self.details, self.hint))


class SupabaseAuthError(SupabaseError):
    """401/403 (bad key, RLS, expired session)."""


class SupabaseNotFoundError(SupabaseError):
    """404 (missing table, function or storage object)."""


class SupabaseConflictError(SupabaseError):
    """409 (unique violations)."""
