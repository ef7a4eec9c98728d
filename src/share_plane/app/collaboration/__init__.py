"""Collaboration invites: permissioned access through invite/accept."""

from .model import (
    CollaborationInvite,
    InMemoryInviteRepository,
    InviteRepository,
    InviteStatus,
    Permission,
)
from .routes import create_collaboration_router
from .service import CollaborationManager, InviteView

__all__ = [
    'CollaborationInvite',
    'CollaborationManager',
    'InMemoryInviteRepository',
    'InviteRepository',
    'InviteStatus',
    'InviteView',
    'Permission',
    'create_collaboration_router',
]
