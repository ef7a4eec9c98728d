"""Activity events for share links and collaboration invites.

Every share-link and invite lifecycle step is recorded as an ``AuditEvent``:

  - share.created / share.updated / share.deleted (owner actions)
  - share.accessed / share.denied (anonymous reads)
  - invite.created / invite.accepted

Security invariant:
  Public codes and passwords never appear in event data. Only the first
  ``CODE_PREFIX_LENGTH`` characters of a code are kept for correlation.

Emission never fails a request: emitter errors are logged and dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────────

CODE_PREFIX_LENGTH = 3

SHARE_CREATED = 'share.created'
SHARE_ACCESSED = 'share.accessed'
SHARE_DENIED = 'share.denied'
SHARE_UPDATED = 'share.updated'
SHARE_DELETED = 'share.deleted'
INVITE_CREATED = 'invite.created'
INVITE_ACCEPTED = 'invite.accepted'


def redact_code(code: str | None) -> str:
    """Truncate a share or invite code to a short prefix for logging."""
    if not code or len(code) <= CODE_PREFIX_LENGTH:
        return '<redacted>'
    return f'{code[:CODE_PREFIX_LENGTH]}...'


# ── Event model ───────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """One activity record.

    Attributes:
        event_type: One of the ``share.*`` / ``invite.*`` constants.
        actor_user_id: Authenticated actor, empty for anonymous access.
        resource_type: Type tag of the shared resource.
        resource_id: Shared resource id.
        subject_id: Share link or invite id.
        code_prefix: Redacted public code.
        detail: Extra context (denial reason, changed fields, ...).
    """

    event_type: str
    actor_user_id: str = ''
    resource_type: str = ''
    resource_id: str = ''
    subject_id: str = ''
    code_prefix: str = '<redacted>'
    detail: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            'event_type': self.event_type,
            'actor_user_id': self.actor_user_id,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'subject_id': self.subject_id,
            'code_prefix': self.code_prefix,
            'detail': dict(self.detail),
            'timestamp': self.timestamp.isoformat(),
        }


class AuditEmitter(Protocol):
    async def emit(self, event: AuditEvent) -> None: ...


class InMemoryAuditEmitter:
    """Audit emitter that keeps events in a list."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def emit(self, event: AuditEvent) -> None:
        self.events.append(event)

    def find(
        self,
        event_type: str | None = None,
        subject_id: str | None = None,
    ) -> list[AuditEvent]:
        result = self.events
        if event_type:
            result = [e for e in result if e.event_type == event_type]
        if subject_id:
            result = [e for e in result if e.subject_id == subject_id]
        return result


class NullAuditEmitter:
    async def emit(self, event: AuditEvent) -> None:
        return None


# ── Recording ─────────────────────────────────────────────────────────


async def record(
    emitter: AuditEmitter,
    event_type: str,
    *,
    actor_user_id: str = '',
    resource_type: str = '',
    resource_id: str = '',
    subject_id: str = '',
    code: str | None = None,
    detail: dict[str, Any] | None = None,
) -> AuditEvent:
    """Build and emit an event. Emitter failures are logged, not raised."""
    event = AuditEvent(
        event_type=event_type,
        actor_user_id=actor_user_id,
        resource_type=resource_type,
        resource_id=resource_id,
        subject_id=subject_id,
        code_prefix=redact_code(code),
        detail=detail or {},
    )
    try:
        await emitter.emit(event)
    except Exception:
        logger.exception('Audit emit failed for %s subject=%s', event_type, subject_id)
    return event
