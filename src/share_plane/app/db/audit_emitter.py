"""Supabase-backed AuditEmitter writing to the activities table.

emit() is fire-and-forget: errors are logged, never raised.

Sensitive keys are stripped from the event detail before persistence, and
codes are already reduced to a short prefix by ``AuditEvent``.
"""

from __future__ import annotations

import logging
from typing import Any

from ..audit import AuditEvent
from .supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = frozenset({
    "authorization",
    "apikey",
    "service_role_key",
    "password",
    "password_hash",
    "share_code",
    "invite_code",
    "token",
    "secret",
})


def _sanitize(detail: dict[str, Any]) -> dict[str, Any]:
    sanitized: dict[str, Any] = {}
    for key, value in detail.items():
        if key.lower() in _SENSITIVE_KEYS:
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = _sanitize(value)
        else:
            sanitized[key] = value
    return sanitized


class SupabaseAuditEmitter:
    """AuditEmitter backed by the activities table via PostgREST."""

    def __init__(self, client: SupabaseClient, table: str = "activities") -> None:
        self._client = client
        self._table = table

    async def emit(self, event: AuditEvent) -> None:
        try:
            row = {
                "action": event.event_type,
                "user_id": event.actor_user_id or None,
                "resource_type": event.resource_type or None,
                "resource_id": event.resource_id or None,
                "subject_id": event.subject_id or None,
                "details": _sanitize({
                    **event.detail,
                    "code_prefix": event.code_prefix,
                }),
                "created_at": event.timestamp.isoformat(),
            }
            await self._client.insert(self._table, row)
        except Exception:
            logger.exception(
                "Activity write failed for action=%s subject=%s",
                event.event_type,
                event.subject_id or "?",
            )
