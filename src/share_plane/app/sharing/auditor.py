"""Access auditor: counts successful anonymous share-link accesses.

The counter increment is delegated to the repository's atomic primitive
(lock-guarded in memory, a single ``UPDATE ... RETURNING`` in Postgres), so
N concurrent successful accesses raise ``access_count`` by exactly N.
"""

from __future__ import annotations

import logging

from share_plane.observability.metrics import SHARE_ACCESS_TOTAL

from ..audit import SHARE_ACCESSED, AuditEmitter, NullAuditEmitter, record
from ..errors import NotFoundError
from .model import ShareLink, ShareLinkRepository

logger = logging.getLogger(__name__)


class AccessAuditor:
    def __init__(
        self,
        repo: ShareLinkRepository,
        audit: AuditEmitter | None = None,
    ) -> None:
        self._repo = repo
        self._audit = audit or NullAuditEmitter()

    async def increment_access_count(self, link_id: str) -> int:
        """Add one to the link's access count and return the new value.

        Raises:
            NotFoundError: The link was deleted concurrently.
        """
        new_count = await self._repo.increment_access_count(link_id)
        if new_count is None:
            raise NotFoundError('Share link not found.', code='share_not_found')
        return new_count

    async def record_access(self, link: ShareLink, *, via: str) -> int:
        """Count one successful access of ``link`` and emit its activity."""
        new_count = await self.increment_access_count(link.id)
        SHARE_ACCESS_TOTAL.labels(resource_type=link.resource_type.value).inc()
        logger.debug('Share %s accessed via %s (count=%d)', link.id, via, new_count)
        await record(
            self._audit,
            SHARE_ACCESSED,
            resource_type=link.resource_type.value,
            resource_id=link.resource_id,
            subject_id=link.id,
            code=link.share_code,
            detail={'via': via, 'access_count': new_count},
        )
        return new_count
