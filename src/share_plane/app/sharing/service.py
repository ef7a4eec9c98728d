"""Share-link manager: create, read, access, update, delete and list links.

Owner operations (create/update/delete/list) run with an authenticated
caller id. ``get_share_link`` and ``access_shared_item`` are anonymous and
addressed by the public share code only.

Ordering rules:
  - Expiry is checked before the password, so an expired link is 410 no
    matter what password is presented.
  - Every validation, existence and ownership check happens before any
    write; a failed password check leaves ``access_count`` untouched.
  - Update/delete re-check ownership on the record just read and again in
    the conditional write (``id`` AND ``owner_user_id``).
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from share_plane.observability.metrics import (
    SHARE_ACCESS_DENIED_TOTAL,
    SHARE_LINKS_CREATED_TOTAL,
)

from ..audit import (
    SHARE_CREATED,
    SHARE_DELETED,
    SHARE_DENIED,
    SHARE_UPDATED,
    AuditEmitter,
    NullAuditEmitter,
    record,
)
from ..errors import (
    AuthorizationError,
    ExpiredError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ..resources import (
    SHAREABLE_TYPES,
    Resource,
    ResourceResolver,
    ResourceType,
    parse_resource_type,
)
from ..security.passwords import hash_password, verify_password
from ..settings import SharePlaneSettings
from ..tokens import generate_share_code, insert_with_unique_code
from .auditor import AccessAuditor
from .model import ShareLink, ShareLinkRepository

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({'expires_at', 'password', 'allow_download'})


# ── Results ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ShareLinkView:
    """A link as returned to its owner, with the public share URL."""

    link: ShareLink
    share_url: str

    def to_dict(self) -> dict[str, Any]:
        return {**self.link.to_dict(), 'share_url': self.share_url}


@dataclass(frozen=True, slots=True)
class PasswordRequiredStub:
    """Pre-authentication lookup result for a password-protected link."""

    link: ShareLink

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.link.id,
            'share_code': self.link.share_code,
            'resource_type': self.link.resource_type.value,
            'password_required': True,
            'allow_download': self.link.allow_download,
        }


@dataclass(frozen=True, slots=True)
class SharedItem:
    link: ShareLink
    resource: Resource
    presigned_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            'share_link': self.link.to_public_dict(),
            'resource': self.resource.to_dict(),
        }
        if self.presigned_url is not None:
            body['presigned_url'] = self.presigned_url
        return body


@dataclass(frozen=True, slots=True)
class ShareLinkPage:
    items: list[ShareLinkView] = field(default_factory=list)
    next_token: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'items': [item.to_dict() for item in self.items],
            'count': len(self.items),
            'next_token': self.next_token,
        }


# ── Helpers ───────────────────────────────────────────────────────────


def normalize_expiry(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime; naive input is taken as UTC."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ValidationError('expires_at must be a datetime.', code='invalid_expires_at')
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_page_token(offset: int) -> str:
    raw = json.dumps({'offset': offset}).encode('utf-8')
    return base64.urlsafe_b64encode(raw).decode('ascii')


def decode_page_token(token: str) -> int:
    """Decode an opaque ``next_token``.

    Raises:
        ValidationError: The token was not produced by ``encode_page_token``.
    """
    try:
        payload = json.loads(base64.urlsafe_b64decode(token.encode('ascii')))
    except (binascii.Error, ValueError):
        payload = None
    offset = payload.get('offset') if isinstance(payload, dict) else None
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise ValidationError('Invalid pagination token.', code='invalid_next_token')
    return offset


# ── Manager ───────────────────────────────────────────────────────────


class ShareLinkManager:
    """Share-link operations over injected repository and resolver."""

    def __init__(
        self,
        repo: ShareLinkRepository,
        resolver: ResourceResolver,
        settings: SharePlaneSettings,
        *,
        audit: AuditEmitter | None = None,
        auditor: AccessAuditor | None = None,
    ) -> None:
        self._repo = repo
        self._resolver = resolver
        self._settings = settings
        self._audit = audit or NullAuditEmitter()
        self._auditor = auditor or AccessAuditor(repo, self._audit)

    def _view(self, link: ShareLink) -> ShareLinkView:
        return ShareLinkView(link=link, share_url=self._settings.share_url(link.share_code))

    async def _deny(self, link: ShareLink | None, reason: str) -> None:
        SHARE_ACCESS_DENIED_TOTAL.labels(reason=reason).inc()
        if link is not None:
            await record(
                self._audit,
                SHARE_DENIED,
                resource_type=link.resource_type.value,
                resource_id=link.resource_id,
                subject_id=link.id,
                code=link.share_code,
                detail={'reason': reason},
            )

    async def _load_live_link(self, share_code: str) -> ShareLink:
        link = await self._repo.get_by_code(share_code)
        if link is None:
            await self._deny(None, 'not_found')
            raise NotFoundError('Share link not found.', code='share_not_found')
        if link.is_expired():
            await self._deny(link, 'expired')
            raise ExpiredError('Share link has expired.')
        return link

    async def _load_owned_link(self, owner_id: str, link_id: str) -> ShareLink:
        link = await self._repo.get(link_id)
        if link is None:
            raise NotFoundError('Share link not found.', code='share_not_found')
        if link.owner_user_id != owner_id:
            raise AuthorizationError(
                'You do not have permission to modify this share link.',
            )
        return link

    # ── Owner operations ──────────────────────────────────────────────

    async def create_share_link(
        self,
        owner_id: str,
        resource_type: str | ResourceType,
        resource_id: str,
        *,
        expires_at: datetime | None = None,
        password: str | None = None,
        allow_download: bool = True,
    ) -> ShareLinkView:
        """Create a share link for a resource owned by ``owner_id``.

        Raises:
            ValidationError: Unsupported type or malformed field.
            NotFoundError: Resource does not exist.
            AuthorizationError: Resource belongs to another user.
        """
        if not resource_id:
            raise ValidationError('resource_id is required.', code='missing_resource_id')
        rtype = parse_resource_type(resource_type, SHAREABLE_TYPES)
        expiry = normalize_expiry(expires_at)

        _, resource = await self._resolver.fetch(rtype, resource_id, SHAREABLE_TYPES)
        if resource.owner_user_id != owner_id:
            raise AuthorizationError('You do not have permission to share this resource.')

        password_hash = await asyncio.to_thread(hash_password, password) if password else None

        async def _insert(code: str) -> ShareLink:
            return await self._repo.create(ShareLink(
                owner_user_id=owner_id,
                share_code=code,
                resource_type=rtype,
                resource_id=resource_id,
                expires_at=expiry,
                password_hash=password_hash,
                allow_download=bool(allow_download),
            ))

        link = await insert_with_unique_code(_insert, generate_share_code)

        SHARE_LINKS_CREATED_TOTAL.labels(
            resource_type=rtype.value,
            password_protected=str(link.password_required).lower(),
        ).inc()
        await record(
            self._audit,
            SHARE_CREATED,
            actor_user_id=owner_id,
            resource_type=rtype.value,
            resource_id=resource_id,
            subject_id=link.id,
            code=link.share_code,
            detail={
                'expires_at': expiry.isoformat() if expiry else None,
                'password_protected': link.password_required,
                'allow_download': link.allow_download,
            },
        )
        logger.info('Share link %s created for %s %s', link.id, rtype.value, resource_id)
        return self._view(link)

    async def update_share_link(
        self,
        owner_id: str,
        link_id: str,
        changes: Mapping[str, Any],
    ) -> ShareLinkView:
        """Partially update a link.

        Only keys present in ``changes`` are applied. ``expires_at=None``
        removes the expiry; ``password=None`` (or empty) removes the password.

        Raises:
            ValidationError: Unknown field or bad value.
            NotFoundError: Link does not exist (or vanished mid-update).
            AuthorizationError: Link belongs to another user.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f'Cannot update fields: {", ".join(sorted(unknown))}',
                code='invalid_update_field',
            )

        updates: dict[str, Any] = {}
        if 'expires_at' in changes:
            updates['expires_at'] = normalize_expiry(changes['expires_at'])
        if 'allow_download' in changes:
            if not isinstance(changes['allow_download'], bool):
                raise ValidationError(
                    'allow_download must be a boolean.', code='invalid_allow_download',
                )
            updates['allow_download'] = changes['allow_download']
        if 'password' in changes:
            password = changes['password']
            updates['password_hash'] = (
                await asyncio.to_thread(hash_password, password) if password else None
            )

        await self._load_owned_link(owner_id, link_id)

        if updates:
            link = await self._repo.update(link_id, owner_id, updates)
        else:
            link = await self._repo.get(link_id)
        if link is None:
            raise NotFoundError('Share link not found.', code='share_not_found')

        await record(
            self._audit,
            SHARE_UPDATED,
            actor_user_id=owner_id,
            resource_type=link.resource_type.value,
            resource_id=link.resource_id,
            subject_id=link.id,
            code=link.share_code,
            detail={'fields': sorted(changes)},
        )
        return self._view(link)

    async def delete_share_link(self, owner_id: str, link_id: str) -> None:
        """Hard-delete a link owned by ``owner_id``.

        Raises:
            NotFoundError: Link does not exist.
            AuthorizationError: Link belongs to another user.
        """
        link = await self._load_owned_link(owner_id, link_id)
        if not await self._repo.delete(link_id, owner_id):
            raise NotFoundError('Share link not found.', code='share_not_found')

        await record(
            self._audit,
            SHARE_DELETED,
            actor_user_id=owner_id,
            resource_type=link.resource_type.value,
            resource_id=link.resource_id,
            subject_id=link.id,
            code=link.share_code,
        )
        logger.info('Share link %s deleted by owner', link_id)

    async def list_share_links(
        self,
        owner_id: str,
        *,
        resource_type: str | ResourceType | None = None,
        resource_id: str | None = None,
        limit: int | None = None,
        next_token: str | None = None,
    ) -> ShareLinkPage:
        """One page of the owner's links, newest first."""
        rtype = (
            parse_resource_type(resource_type, SHAREABLE_TYPES)
            if resource_type else None
        )
        page_size = self._settings.default_page_size if limit is None else limit
        if not 1 <= page_size <= self._settings.max_page_size:
            raise ValidationError(
                f'limit must be between 1 and {self._settings.max_page_size}.',
                code='invalid_limit',
            )
        offset = decode_page_token(next_token) if next_token else 0

        links = await self._repo.list_for_owner(
            owner_id,
            resource_type=rtype,
            resource_id=resource_id or None,
            limit=page_size + 1,
            offset=offset,
        )
        has_more = len(links) > page_size
        return ShareLinkPage(
            items=[self._view(link) for link in links[:page_size]],
            next_token=encode_page_token(offset + page_size) if has_more else None,
        )

    # ── Anonymous operations ──────────────────────────────────────────

    async def get_share_link(self, share_code: str) -> PasswordRequiredStub | SharedItem:
        """Resolve a share code.

        Password-protected links return a stub without touching the
        resource or the access counter.

        Raises:
            NotFoundError: Unknown code or missing resource.
            ExpiredError: Link is past its expiry.
        """
        link = await self._load_live_link(share_code)
        if link.password_required:
            return PasswordRequiredStub(link)

        _, resource = await self._resolver.fetch(
            link.resource_type, link.resource_id, SHAREABLE_TYPES,
        )
        link.access_count = await self._auditor.record_access(link, via='get')
        return SharedItem(link=link, resource=resource)

    async def access_shared_item(
        self,
        share_code: str,
        password: str | None = None,
        *,
        download: bool = False,
    ) -> SharedItem:
        """Access a shared item, presenting the password if one is set.

        Blob-backed resources get a presigned read URL; it carries an
        attachment disposition only if the link allows downloads and the
        caller asked for one.

        Raises:
            NotFoundError: Unknown code, missing resource or missing blob.
            ExpiredError: Link is past its expiry.
            UnauthorizedError: Password missing or wrong.
        """
        link = await self._load_live_link(share_code)

        if link.password_required:
            if not password:
                await self._deny(link, 'password_required')
                raise UnauthorizedError(
                    'This share link requires a password.', code='password_required',
                )
            matches = await asyncio.to_thread(verify_password, password, link.password_hash)
            if not matches:
                await self._deny(link, 'invalid_password')
                raise UnauthorizedError('Invalid password.', code='invalid_password')

        resolved, resource = await self._resolver.fetch(
            link.resource_type, link.resource_id, SHAREABLE_TYPES,
        )

        presigned_url = None
        if resolved.kind.blob_backed:
            if not resource.blob_key:
                raise NotFoundError(
                    f'{resolved.kind.label} content not found.', code='content_not_found',
                )
            attachment_filename = None
            if link.allow_download and download:
                attachment_filename = resource.name or resource.blob_key.rsplit('/', 1)[-1]
            presigned_url = await resolved.blob_store.issue_read_url(
                resource.blob_key,
                expiry_seconds=self._settings.presigned_url_expiry_seconds,
                attachment_filename=attachment_filename,
            )

        link.access_count = await self._auditor.record_access(link, via='access')
        return SharedItem(link=link, resource=resource, presigned_url=presigned_url)
