"""Share-plane configuration settings.

SharePlaneSettings is the single configuration object accepted by create_app().
It is a plain frozen dataclass (not env-coupled) so tests can inject config
without touching os.environ. Backing-store table and bucket names live here
instead of being read from the process environment at call time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .resources import BLOB_BACKED_TYPES, ResourceType

DEFAULT_PUBLIC_BASE_URL = "https://api.example.com"
DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:5173",
    "http://localhost:3000",
)

_RESOURCE_TABLE_ENV: Mapping[ResourceType, str] = MappingProxyType({
    ResourceType.FILE: "FILES_TABLE_NAME",
    ResourceType.FOLDER: "FOLDERS_TABLE_NAME",
    ResourceType.PHOTO: "PHOTOS_TABLE_NAME",
    ResourceType.ALBUM: "ALBUMS_TABLE_NAME",
    ResourceType.RESUME: "RESUME_VERSIONS_TABLE_NAME",
})

_BUCKET_ENV: Mapping[ResourceType, str] = MappingProxyType({
    ResourceType.FILE: "FILES_BUCKET_NAME",
    ResourceType.PHOTO: "PHOTOS_BUCKET_NAME",
    ResourceType.RESUME: "RESUMES_BUCKET_NAME",
})


@dataclass(frozen=True, slots=True)
class SharePlaneSettings:
    """Configuration for the share-plane FastAPI application.

    All fields have defaults suitable for local development. Non-local
    environments must supply Supabase credentials, a JWT secret, and a
    table (and bucket, where blob backed) for every resource type.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    public_base_url: str = DEFAULT_PUBLIC_BASE_URL
    """Base URL used to build share and invite URLs (no trailing slash)."""

    # ── Supabase ───────────────────────────────────────────────────
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    """Service-role key for PostgREST and Storage calls. Never log this."""

    supabase_timeout_seconds: float = 30.0

    # ── Auth ───────────────────────────────────────────────────────
    jwt_secret: str = ""
    """HS256 secret for bearer tokens. When empty and supabase_url is set,
    tokens are verified against the project JWKS instead."""

    jwt_audience: str = "authenticated"

    # ── Tables ─────────────────────────────────────────────────────
    share_links_table: str = "share_links"
    collaborations_table: str = "collaborations"
    users_table: str = "users"
    activities_table: str = "activities"

    resource_tables: Mapping[ResourceType, str] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    """Immutable mapping of resource type -> backing table."""

    resource_buckets: Mapping[ResourceType, str] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    """Immutable mapping of blob-backed resource type -> storage bucket."""

    # ── Behaviour ──────────────────────────────────────────────────
    presigned_url_expiry_seconds: int = 3600
    default_page_size: int = 50
    max_page_size: int = 100

    # ── HTTP / logging ─────────────────────────────────────────────
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    def share_url(self, share_code: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/share/{share_code}"

    def invite_url(self, invite_code: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/collaborations/accept/{invite_code}"

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.public_base_url:
            errors.append("public_base_url is required")
        if self.presigned_url_expiry_seconds <= 0:
            errors.append("presigned_url_expiry_seconds must be positive")
        if not 0 < self.default_page_size <= self.max_page_size:
            errors.append("default_page_size must be between 1 and max_page_size")

        if self.is_local:
            return errors

        env = self.environment
        if not self.supabase_url:
            errors.append(f"{env}: supabase_url is required")
        if not self.supabase_service_role_key:
            errors.append(f"{env}: supabase_service_role_key is required")
        if not self.jwt_secret and not self.supabase_url:
            errors.append(f"{env}: jwt_secret or supabase_url is required")
        for name in (
            "share_links_table",
            "collaborations_table",
            "users_table",
            "activities_table",
        ):
            if not getattr(self, name):
                errors.append(f"{env}: {name} is required")
        for rtype in ResourceType:
            if not self.resource_tables.get(rtype):
                errors.append(f"{env}: table for resource type {rtype.value!r} is not set")
        for rtype in BLOB_BACKED_TYPES:
            if not self.resource_buckets.get(rtype):
                errors.append(f"{env}: bucket for resource type {rtype.value!r} is not set")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> SharePlaneSettings:
        """Build settings from environment variables.

        Convenience factory for production use. Tests should construct
        SharePlaneSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        cors_raw = env.get("CORS_ORIGINS", "")
        cors = (
            tuple(o.strip() for o in cors_raw.split(",") if o.strip())
            if cors_raw
            else DEFAULT_CORS_ORIGINS
        )

        tables = {
            rtype: env[var].strip()
            for rtype, var in _RESOURCE_TABLE_ENV.items()
            if env.get(var, "").strip()
        }
        buckets = {
            rtype: env[var].strip()
            for rtype, var in _BUCKET_ENV.items()
            if env.get(var, "").strip()
        }

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            public_base_url=env.get("API_GATEWAY_URL", DEFAULT_PUBLIC_BASE_URL).rstrip("/"),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            supabase_timeout_seconds=float(env.get("SUPABASE_TIMEOUT_SECONDS", "30")),
            jwt_secret=env.get("SUPABASE_JWT_SECRET", ""),
            jwt_audience=env.get("SUPABASE_AUDIENCE", "authenticated"),
            share_links_table=env.get("SHARE_LINKS_TABLE_NAME", "share_links"),
            collaborations_table=env.get("COLLABORATIONS_TABLE_NAME", "collaborations"),
            users_table=env.get("USERS_TABLE_NAME", "users"),
            activities_table=env.get("ACTIVITIES_TABLE_NAME", "activities"),
            resource_tables=MappingProxyType(tables),
            resource_buckets=MappingProxyType(buckets),
            presigned_url_expiry_seconds=int(env.get("PRESIGNED_URL_EXPIRY_SECONDS", "3600")),
            default_page_size=int(env.get("DEFAULT_PAGE_SIZE", "50")),
            max_page_size=int(env.get("MAX_PAGE_SIZE", "100")),
            cors_origins=cors,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "json"),
        )
