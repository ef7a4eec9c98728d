"""Tests for resource-type parsing and resolution."""

from __future__ import annotations

import pytest

from share_plane.app.errors import ConfigurationError, NotFoundError, ValidationError
from share_plane.app.inmemory import InMemoryResourceStore
from share_plane.app.resources import (
    BLOB_BACKED_TYPES,
    COLLABORATIVE_TYPES,
    SHAREABLE_TYPES,
    ResourceResolver,
    ResourceType,
    parse_resource_type,
)

from share_plane_helpers import OWNER_ID


class TestTypeSets:
    def test_blob_backed(self):
        assert BLOB_BACKED_TYPES == {ResourceType.FILE, ResourceType.PHOTO, ResourceType.RESUME}

    def test_collaborative(self):
        assert COLLABORATIVE_TYPES == {
            ResourceType.FILE, ResourceType.FOLDER, ResourceType.ALBUM,
        }

    def test_all_shareable(self):
        assert SHAREABLE_TYPES == set(ResourceType)


class TestParseResourceType:
    def test_string(self):
        assert parse_resource_type('album') is ResourceType.ALBUM

    def test_unknown(self):
        with pytest.raises(ValidationError) as exc:
            parse_resource_type('video')
        assert exc.value.code == 'unsupported_resource_type'

    def test_outside_allowed(self):
        with pytest.raises(ValidationError):
            parse_resource_type('resume', COLLABORATIVE_TYPES)


class TestResourceResolver:
    @pytest.mark.asyncio
    async def test_fetch(self, resolver, photo):
        resolved, resource = await resolver.fetch('photo', 'P1')
        assert resolved.kind.blob_backed is True
        assert resolved.blob_store is not None
        assert resource.owner_user_id == OWNER_ID
        assert resource.blob_key == 'photos/user-owner/P1.jpg'

    @pytest.mark.asyncio
    async def test_non_blob_type_has_no_blob_store(self, resolver, folder):
        resolved, _ = await resolver.fetch(ResourceType.FOLDER, 'F1')
        assert resolved.blob_store is None

    @pytest.mark.asyncio
    async def test_not_found_code_per_type(self, resolver):
        with pytest.raises(NotFoundError) as exc:
            await resolver.fetch('resume', 'R1')
        assert exc.value.code == 'resume_not_found'

    def test_missing_store_wiring(self):
        resolver = ResourceResolver({ResourceType.FOLDER: InMemoryResourceStore()})
        with pytest.raises(ConfigurationError):
            resolver.resolve('album')

    def test_missing_blob_store_wiring(self):
        resolver = ResourceResolver({ResourceType.PHOTO: InMemoryResourceStore()})
        with pytest.raises(ConfigurationError):
            resolver.resolve('photo')

    def test_resource_to_dict_uses_record(self, photo):
        body = photo.to_dict()
        assert body['id'] == 'P1'
        assert body['user_id'] == OWNER_ID
        assert body['name'] == 'beach.jpg'
