"""Tests for SharePlaneSettings validation and environment loading."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from share_plane.app.errors import ConfigurationError
from share_plane.app.main import create_app
from share_plane.app.resources import BLOB_BACKED_TYPES, ResourceType
from share_plane.app.settings import DEFAULT_CORS_ORIGINS, SharePlaneSettings


def _full_env(**overrides) -> dict[str, str]:
    env = {
        'ENVIRONMENT': 'production',
        'API_GATEWAY_URL': 'https://api.example.org/',
        'SUPABASE_URL': 'https://proj.supabase.co',
        'SUPABASE_SERVICE_ROLE_KEY': 'service-key',
        'SUPABASE_JWT_SECRET': 'jwt-secret',
        'FILES_TABLE_NAME': 'files',
        'FOLDERS_TABLE_NAME': 'folders',
        'PHOTOS_TABLE_NAME': 'photos',
        'ALBUMS_TABLE_NAME': 'albums',
        'RESUME_VERSIONS_TABLE_NAME': 'resume_versions',
        'FILES_BUCKET_NAME': 'files-bucket',
        'PHOTOS_BUCKET_NAME': 'photos-bucket',
        'RESUMES_BUCKET_NAME': 'resumes-bucket',
    }
    env.update(overrides)
    return env


class TestDefaults:
    def test_local_defaults_are_valid(self):
        settings = SharePlaneSettings()
        assert settings.is_local
        assert settings.validate() == []
        assert settings.cors_origins == DEFAULT_CORS_ORIGINS

    def test_urls(self):
        settings = SharePlaneSettings(public_base_url='https://x.test/')
        assert settings.share_url('AbCd1234') == 'https://x.test/share/AbCd1234'
        assert settings.invite_url('AbCdE12345') == (
            'https://x.test/collaborations/accept/AbCdE12345'
        )

    def test_bad_page_sizes(self):
        errors = SharePlaneSettings(default_page_size=200, max_page_size=100).validate()
        assert any('default_page_size' in e for e in errors)


class TestNonLocalValidation:
    def test_missing_everything(self):
        errors = SharePlaneSettings(environment='production').validate()
        joined = '\n'.join(errors)
        assert 'supabase_url is required' in joined
        assert 'supabase_service_role_key is required' in joined
        for rtype in ResourceType:
            assert f'table for resource type {rtype.value!r}' in joined
        for rtype in BLOB_BACKED_TYPES:
            assert f'bucket for resource type {rtype.value!r}' in joined

    def test_from_full_env_is_valid(self):
        settings = SharePlaneSettings.from_env(_full_env())
        assert settings.validate() == []
        assert settings.public_base_url == 'https://api.example.org'
        assert settings.resource_tables[ResourceType.RESUME] == 'resume_versions'
        assert settings.resource_buckets[ResourceType.PHOTO] == 'photos-bucket'
        assert isinstance(settings.resource_tables, MappingProxyType)

    def test_missing_bucket(self):
        env = _full_env()
        del env['PHOTOS_BUCKET_NAME']
        errors = SharePlaneSettings.from_env(env).validate()
        assert errors == ["production: bucket for resource type 'photo' is not set"]

    def test_create_app_rejects_invalid_settings(self):
        with pytest.raises(ConfigurationError):
            create_app(SharePlaneSettings(environment='production'))


class TestFromEnv:
    def test_empty_env_is_local(self):
        settings = SharePlaneSettings.from_env({})
        assert settings.environment == 'local'
        assert settings.cors_origins == DEFAULT_CORS_ORIGINS
        assert settings.presigned_url_expiry_seconds == 3600

    def test_cors_and_numbers(self):
        settings = SharePlaneSettings.from_env({
            'CORS_ORIGINS': 'https://a.test, https://b.test,',
            'PRESIGNED_URL_EXPIRY_SECONDS': '600',
            'MAX_PAGE_SIZE': '20',
            'DEFAULT_PAGE_SIZE': '10',
        })
        assert settings.cors_origins == ('https://a.test', 'https://b.test')
        assert settings.presigned_url_expiry_seconds == 600
        assert settings.max_page_size == 20
        assert settings.default_page_size == 10

    def test_frozen(self):
        settings = SharePlaneSettings()
        with pytest.raises(AttributeError):
            settings.environment = 'production'
