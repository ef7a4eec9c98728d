"""Collaboration invite manager: invite/accept handshake.

Invite:
  Owner of a file, folder or album invites a collaborator by email. If an
  account already exists for the email, the invite is bound to it
  (``pending``) and a second invite for the same collaborator and resource
  is a conflict. Otherwise the invite waits for a sign-up (``invited``).

Accept:
  Allowed for the bound collaborator, or, while no collaborator is bound,
  for the user whose email matches the invite (case-insensitive). The
  accepting user is bound and the invite becomes ``accepted`` through a
  write conditional on the invite still being open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from share_plane.observability.metrics import COLLABORATION_INVITES_TOTAL

from ..audit import INVITE_ACCEPTED, INVITE_CREATED, AuditEmitter, NullAuditEmitter, record
from ..errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..protocols import IdentityStore
from ..resources import COLLABORATIVE_TYPES, ResourceResolver, ResourceType, parse_resource_type
from ..settings import SharePlaneSettings
from ..tokens import generate_invite_code, insert_with_unique_code
from .model import CollaborationInvite, InviteRepository, InviteStatus, Permission

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000


def normalize_email(value: str) -> str:
    """Strip and lower-case an email address.

    Raises:
        ValueError: Not shaped like ``local@domain.tld``.
    """
    email = (value or '').strip().lower()
    local, _, domain = email.partition('@')
    if not local or '.' not in domain or domain.startswith('.') or domain.endswith('.'):
        raise ValueError('Invalid email address')
    return email


def parse_permission(value: str | Permission | None) -> Permission:
    if value is None:
        return Permission.VIEW
    try:
        return Permission(value)
    except ValueError:
        names = ', '.join(p.value for p in Permission)
        raise ValidationError(
            f'Invalid permissions. Must be one of: {names}',
            code='invalid_permission',
        )


@dataclass(frozen=True, slots=True)
class InviteView:
    invite: CollaborationInvite
    invite_url: str

    def to_dict(self) -> dict[str, Any]:
        return {**self.invite.to_dict(), 'invite_url': self.invite_url}


class CollaborationManager:
    def __init__(
        self,
        repo: InviteRepository,
        resolver: ResourceResolver,
        identity: IdentityStore,
        settings: SharePlaneSettings,
        *,
        audit: AuditEmitter | None = None,
    ) -> None:
        self._repo = repo
        self._resolver = resolver
        self._identity = identity
        self._settings = settings
        self._audit = audit or NullAuditEmitter()

    async def invite_collaborator(
        self,
        owner_id: str,
        resource_type: str | ResourceType,
        resource_id: str,
        email: str,
        permissions: str | Permission | None = None,
        message: str | None = None,
    ) -> InviteView:
        """Invite ``email`` to collaborate on an owned resource.

        Raises:
            ValidationError: Unsupported type, permission, email or message.
            NotFoundError: Resource does not exist.
            AuthorizationError: Resource belongs to another user.
            ConflictError: The collaborator already has an invite for it.
        """
        rtype = parse_resource_type(resource_type, COLLABORATIVE_TYPES)
        permission = parse_permission(permissions)
        if not resource_id:
            raise ValidationError('resource_id is required.', code='missing_resource_id')
        try:
            collaborator_email = normalize_email(email)
        except ValueError:
            raise ValidationError('Invalid email address.', code='invalid_email')
        message = message or ''
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f'message must be at most {MAX_MESSAGE_LENGTH} characters.',
                code='invalid_message',
            )

        _, resource = await self._resolver.fetch(rtype, resource_id, COLLABORATIVE_TYPES)
        if resource.owner_user_id != owner_id:
            raise AuthorizationError(
                f'You do not have permission to share this {rtype.value}.',
            )

        user = await self._identity.get_user_by_email(collaborator_email)
        collaborator_id = user.id if user else None
        if collaborator_id and await self._repo.exists_for_collaborator(
            rtype, resource_id, collaborator_id,
        ):
            COLLABORATION_INVITES_TOTAL.labels(outcome='conflict').inc()
            raise ConflictError(
                'A collaboration already exists with this user for this resource.',
                code='collaboration_exists',
            )

        status = InviteStatus.PENDING if collaborator_id else InviteStatus.INVITED

        async def _insert(code: str) -> CollaborationInvite:
            return await self._repo.create(CollaborationInvite(
                owner_id=owner_id,
                collaborator_id=collaborator_id,
                collaborator_email=collaborator_email,
                resource_type=rtype,
                resource_id=resource_id,
                permissions=permission,
                status=status,
                invite_code=code,
                message=message,
            ))

        invite = await insert_with_unique_code(_insert, generate_invite_code)

        COLLABORATION_INVITES_TOTAL.labels(outcome=status.value).inc()
        await record(
            self._audit,
            INVITE_CREATED,
            actor_user_id=owner_id,
            resource_type=rtype.value,
            resource_id=resource_id,
            subject_id=invite.id,
            code=invite.invite_code,
            detail={'permissions': permission.value, 'status': status.value},
        )
        logger.info(
            'Collaboration invite %s created for %s %s (status=%s)',
            invite.id, rtype.value, resource_id, status.value,
        )
        return InviteView(invite, self._settings.invite_url(invite.invite_code))

    async def accept_collaboration_invite(
        self,
        accepting_user_id: str,
        invite_code: str,
    ) -> CollaborationInvite:
        """Accept an invite on behalf of ``accepting_user_id``.

        Raises:
            NotFoundError: Unknown invite code or accepting user.
            AuthorizationError: Invite is addressed to someone else.
            ConflictError: Invite changed state while being accepted.
        """
        invite = await self._repo.get_by_code(invite_code)
        if invite is None:
            raise NotFoundError('Invitation not found.', code='invite_not_found')

        user = await self._identity.get_user_by_id(accepting_user_id)
        if user is None:
            raise NotFoundError('User not found.', code='user_not_found')

        if invite.collaborator_id is not None:
            authorized = invite.collaborator_id == accepting_user_id
        else:
            authorized = invite.collaborator_email.lower() == (user.email or '').lower()
        if not authorized:
            COLLABORATION_INVITES_TOTAL.labels(outcome='forbidden').inc()
            raise AuthorizationError('This invitation is not for you.')

        if invite.status == InviteStatus.ACCEPTED:
            return invite

        accepted = await self._repo.accept(
            invite.id,
            accepting_user_id,
            expected_collaborator_id=invite.collaborator_id,
        )
        if accepted is None:
            current = await self._repo.get_by_code(invite_code)
            if (
                current is not None
                and current.status == InviteStatus.ACCEPTED
                and current.collaborator_id == accepting_user_id
            ):
                return current
            raise ConflictError(
                'Invitation changed while it was being accepted.',
                code='invite_state_changed',
            )

        COLLABORATION_INVITES_TOTAL.labels(outcome='accepted').inc()
        await record(
            self._audit,
            INVITE_ACCEPTED,
            actor_user_id=accepting_user_id,
            resource_type=accepted.resource_type.value,
            resource_id=accepted.resource_id,
            subject_id=accepted.id,
            code=accepted.invite_code,
            detail={'permissions': accepted.permissions.value},
        )
        logger.info('Collaboration invite %s accepted', accepted.id)
        return accepted
