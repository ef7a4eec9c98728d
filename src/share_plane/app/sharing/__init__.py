"""Share links: anonymous, expiring, optionally password-protected access."""

from .access import create_share_access_router
from .auditor import AccessAuditor
from .model import InMemoryShareLinkRepository, ShareLink, ShareLinkRepository
from .routes import create_share_router
from .service import (
    PasswordRequiredStub,
    SharedItem,
    ShareLinkManager,
    ShareLinkPage,
    ShareLinkView,
)

__all__ = [
    'AccessAuditor',
    'InMemoryShareLinkRepository',
    'PasswordRequiredStub',
    'SharedItem',
    'ShareLink',
    'ShareLinkManager',
    'ShareLinkPage',
    'ShareLinkRepository',
    'ShareLinkView',
    'create_share_access_router',
    'create_share_router',
]
