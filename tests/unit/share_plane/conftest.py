"""Shared fixtures for share-plane unit tests.

Everything is wired with the in-memory adapters; tests seed resources and
users directly on the stores.
"""

from __future__ import annotations

import pytest

from share_plane.app.audit import InMemoryAuditEmitter
from share_plane.app.collaboration import CollaborationManager, InMemoryInviteRepository
from share_plane.app.inmemory import (
    InMemoryBlobStore,
    InMemoryIdentityStore,
    InMemoryResourceStore,
)
from share_plane.app.main import create_app
from share_plane.app.resources import BLOB_BACKED_TYPES, ResourceResolver, ResourceType
from share_plane.app.settings import SharePlaneSettings
from share_plane.app.sharing import InMemoryShareLinkRepository, ShareLinkManager

from share_plane_helpers import OWNER_ID, PUBLIC_BASE_URL, TEST_SECRET


@pytest.fixture
def settings() -> SharePlaneSettings:
    return SharePlaneSettings(public_base_url=PUBLIC_BASE_URL, jwt_secret=TEST_SECRET)


@pytest.fixture
def stores() -> dict[ResourceType, InMemoryResourceStore]:
    return {rtype: InMemoryResourceStore() for rtype in ResourceType}


@pytest.fixture
def blob_stores() -> dict[ResourceType, InMemoryBlobStore]:
    return {rtype: InMemoryBlobStore(bucket=rtype.value) for rtype in BLOB_BACKED_TYPES}


@pytest.fixture
def resolver(stores, blob_stores) -> ResourceResolver:
    return ResourceResolver(stores, blob_stores)


@pytest.fixture
def audit() -> InMemoryAuditEmitter:
    return InMemoryAuditEmitter()


@pytest.fixture
def share_repo() -> InMemoryShareLinkRepository:
    return InMemoryShareLinkRepository()


@pytest.fixture
def share_manager(share_repo, resolver, settings, audit) -> ShareLinkManager:
    return ShareLinkManager(share_repo, resolver, settings, audit=audit)


@pytest.fixture
def identity() -> InMemoryIdentityStore:
    store = InMemoryIdentityStore()
    store.add_user('owner@example.com', user_id=OWNER_ID)
    return store


@pytest.fixture
def invite_repo() -> InMemoryInviteRepository:
    return InMemoryInviteRepository()


@pytest.fixture
def collab_manager(invite_repo, resolver, identity, settings, audit) -> CollaborationManager:
    return CollaborationManager(invite_repo, resolver, identity, settings, audit=audit)


@pytest.fixture
def photo(stores):
    return stores[ResourceType.PHOTO].add(
        OWNER_ID,
        resource_id='P1',
        blob_key='photos/user-owner/P1.jpg',
        name='beach.jpg',
    )


@pytest.fixture
def folder(stores):
    return stores[ResourceType.FOLDER].add(OWNER_ID, resource_id='F1', name='Trips')


@pytest.fixture
def app(settings, share_repo, invite_repo, stores, blob_stores, identity, audit):
    return create_app(
        settings,
        share_repo=share_repo,
        invite_repo=invite_repo,
        resource_stores=stores,
        blob_stores=blob_stores,
        identity_store=identity,
        audit_emitter=audit,
    )
