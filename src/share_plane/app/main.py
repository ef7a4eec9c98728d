"""Share-plane FastAPI application factory.

The create_app() factory is the single entry point for building the ASGI
application. It wires middleware (request-ID, metrics, request logging,
CORS, auth guard), error handlers and routers, and injects repositories and
external stores.

Usage:
    # Local development (in-memory everything)
    from share_plane.app import create_app, SharePlaneSettings
    app = create_app(SharePlaneSettings())

    # Non-local (Supabase adapters built from settings)
    app = create_app(SharePlaneSettings.from_env())

    # Testing (full DI control)
    app = create_app(settings, share_repo=repo, resource_stores={...}, ...)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Mapping

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from share_plane.observability import configure_logging, metrics_text
from share_plane.observability.middleware import (
    MetricsMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
)

from .audit import AuditEmitter, InMemoryAuditEmitter
from .collaboration import (
    CollaborationManager,
    InMemoryInviteRepository,
    InviteRepository,
    create_collaboration_router,
)
from .errors import ConfigurationError, install_error_handlers
from .protocols import BlobStore, IdentityStore, ResourceStore
from .resources import BLOB_BACKED_TYPES, ResourceResolver, ResourceType
from .security.auth_guard import AuthGuardMiddleware
from .security.token_verify import StaticKeyProvider, TokenVerifier, create_token_verifier
from .settings import SharePlaneSettings
from .sharing import (
    AccessAuditor,
    InMemoryShareLinkRepository,
    ShareLinkManager,
    ShareLinkRepository,
    create_share_access_router,
    create_share_router,
)

logger = logging.getLogger(__name__)

# Only used when ENVIRONMENT=local and no secret or Supabase URL is configured.
LOCAL_DEV_JWT_SECRET = "share-plane-local-dev-secret"


@dataclass(frozen=True)
class AppDependencies:
    """Container for all injected repositories and stores.

    Stored on ``app.state.deps``.
    """

    share_repo: ShareLinkRepository
    invite_repo: InviteRepository
    resource_stores: Mapping[ResourceType, ResourceStore]
    blob_stores: Mapping[ResourceType, BlobStore]
    identity_store: IdentityStore
    audit_emitter: AuditEmitter
    token_verifier: TokenVerifier


def _build_inmemory_deps(settings: SharePlaneSettings) -> AppDependencies:
    from .inmemory import InMemoryBlobStore, InMemoryIdentityStore, InMemoryResourceStore

    return AppDependencies(
        share_repo=InMemoryShareLinkRepository(),
        invite_repo=InMemoryInviteRepository(),
        resource_stores={rtype: InMemoryResourceStore() for rtype in ResourceType},
        blob_stores={
            rtype: InMemoryBlobStore(bucket=rtype.value) for rtype in BLOB_BACKED_TYPES
        },
        identity_store=InMemoryIdentityStore(),
        audit_emitter=InMemoryAuditEmitter(),
        token_verifier=_build_token_verifier(settings),
    )


def _build_supabase_deps(settings: SharePlaneSettings, client) -> AppDependencies:
    from .db import (
        RESOURCE_COLUMNS,
        SupabaseAuditEmitter,
        SupabaseIdentityStore,
        SupabaseInviteRepository,
        SupabaseResourceStore,
        SupabaseShareLinkRepository,
        SupabaseStorageBlobStore,
    )

    return AppDependencies(
        share_repo=SupabaseShareLinkRepository(client, settings.share_links_table),
        invite_repo=SupabaseInviteRepository(client, settings.collaborations_table),
        resource_stores={
            rtype: SupabaseResourceStore(client, table, RESOURCE_COLUMNS[rtype])
            for rtype, table in settings.resource_tables.items()
        },
        blob_stores={
            rtype: SupabaseStorageBlobStore(client, bucket)
            for rtype, bucket in settings.resource_buckets.items()
        },
        identity_store=SupabaseIdentityStore(client, settings.users_table),
        audit_emitter=SupabaseAuditEmitter(client, settings.activities_table),
        token_verifier=_build_token_verifier(settings),
    )


def _build_token_verifier(settings: SharePlaneSettings) -> TokenVerifier:
    if settings.jwt_secret or settings.supabase_url:
        return create_token_verifier(
            jwt_secret=settings.jwt_secret or None,
            supabase_url=settings.supabase_url or None,
            audience=settings.jwt_audience,
        )
    logger.warning("No JWT secret configured; using the local development secret")
    return TokenVerifier(
        StaticKeyProvider(LOCAL_DEV_JWT_SECRET), settings.jwt_audience, ["HS256"],
    )


def create_app(
    settings: SharePlaneSettings | None = None,
    *,
    share_repo: ShareLinkRepository | None = None,
    invite_repo: InviteRepository | None = None,
    resource_stores: Mapping[ResourceType, ResourceStore] | None = None,
    blob_stores: Mapping[ResourceType, BlobStore] | None = None,
    identity_store: IdentityStore | None = None,
    audit_emitter: AuditEmitter | None = None,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create a configured share-plane FastAPI application.

    Args:
        settings: Application settings. Defaults to local-dev settings.
        share_repo..token_verifier: Overrides. Anything not given is
            filled with InMemory implementations in local mode, or with
            Supabase adapters built from ``settings`` otherwise.

    Raises:
        ConfigurationError: Settings validation failed.
    """
    if settings is None:
        settings = SharePlaneSettings()

    errors = settings.validate()
    if errors:
        raise ConfigurationError(
            "Share plane settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    supabase_client = None
    if settings.is_local:
        defaults = _build_inmemory_deps(settings)
    else:
        from .db import SupabaseClient

        supabase_client = SupabaseClient(
            supabase_url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            timeout_seconds=settings.supabase_timeout_seconds,
        )
        defaults = _build_supabase_deps(settings, supabase_client)

    deps = AppDependencies(
        share_repo=share_repo or defaults.share_repo,
        invite_repo=invite_repo or defaults.invite_repo,
        resource_stores=resource_stores if resource_stores is not None else defaults.resource_stores,
        blob_stores=blob_stores if blob_stores is not None else defaults.blob_stores,
        identity_store=identity_store or defaults.identity_store,
        audit_emitter=audit_emitter or defaults.audit_emitter,
        token_verifier=token_verifier or defaults.token_verifier,
    )

    resolver = ResourceResolver(deps.resource_stores, deps.blob_stores)
    share_manager = ShareLinkManager(
        deps.share_repo,
        resolver,
        settings,
        audit=deps.audit_emitter,
        auditor=AccessAuditor(deps.share_repo, deps.audit_emitter),
    )
    collaboration_manager = CollaborationManager(
        deps.invite_repo,
        resolver,
        deps.identity_store,
        settings,
        audit=deps.audit_emitter,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(
            level=settings.log_level,
            json_output=settings.log_format == "json",
        )
        logger.info("Share plane startup (environment=%s)", settings.environment)
        yield
        if supabase_client is not None:
            await supabase_client.aclose()
        logger.info("Share plane shutdown")

    app = FastAPI(
        title="Share Plane",
        description="Share links and collaboration invites for private resources",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.deps = deps
    app.state.settings = settings
    app.state.share_manager = share_manager
    app.state.collaboration_manager = collaboration_manager

    install_error_handlers(app)

    # ── Middleware stack (last added runs first) ──────────────────
    # Order of execution: RequestId -> Metrics -> Logging -> CORS -> AuthGuard -> route
    app.add_middleware(AuthGuardMiddleware, token_verifier=deps.token_verifier)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ── Routes ──────────────────────────────────────────────────

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
        }

    @app.get("/metrics")
    async def metrics():
        body, content_type = metrics_text()
        return Response(content=body, media_type=content_type)

    app.include_router(create_share_router(share_manager))
    app.include_router(create_share_access_router(share_manager))
    app.include_router(create_collaboration_router(collaboration_manager))

    return app


# For uvicorn, use --factory:
#   uvicorn share_plane.app.main:create_app --factory
