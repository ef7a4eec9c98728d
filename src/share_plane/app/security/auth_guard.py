"""Auth guard middleware for owner and collaborator endpoints.

Extracts and verifies the Bearer token, setting
``request.state.auth_identity`` on success. Protected routes receive a 401
when no valid credential is present.

Exempt paths (never require auth):
  - ``/api/v1/share/``: anonymous share-link lookup and access
  - ``/health``, ``/metrics``
  - ``/docs``, ``/openapi.json``
"""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .token_verify import (
    AuthIdentity,
    TokenVerificationError,
    TokenVerifier,
    extract_bearer_token,
)

logger = logging.getLogger(__name__)

DEFAULT_EXEMPT_PREFIXES: tuple[str, ...] = (
    '/api/v1/share/',
    '/health',
    '/metrics',
    '/docs',
    '/openapi.json',
)


def _unauthorized(code: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={'error': 'unauthorized', 'code': code, 'detail': detail},
        headers={'WWW-Authenticate': 'Bearer'},
    )


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Enforce bearer authentication on non-exempt paths.

    Args:
        app: The ASGI application.
        token_verifier: Verifier used for Bearer tokens.
        exempt_prefixes: Path prefixes that skip auth.
        require_auth: If False, identity is set when available but
            requests without credentials pass through.
    """

    def __init__(
        self,
        app,
        token_verifier: TokenVerifier,
        exempt_prefixes: tuple[str, ...] = DEFAULT_EXEMPT_PREFIXES,
        require_auth: bool = True,
    ) -> None:
        super().__init__(app)
        self._verifier = token_verifier
        self._exempt_prefixes = exempt_prefixes
        self._require_auth = require_auth

    def _is_exempt(self, path: str) -> bool:
        return any(
            path == p or path.startswith(p if p.endswith('/') else p + '/')
            for p in self._exempt_prefixes
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.auth_identity = None

        if request.method == 'OPTIONS' or self._is_exempt(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request)
        if token:
            try:
                request.state.auth_identity = self._verifier.verify(token)
            except TokenVerificationError as exc:
                logger.debug('Rejected bearer token on %s: %s', request.url.path, exc.code)
                return _unauthorized(exc.code, exc.detail)
            return await call_next(request)

        if self._require_auth:
            return _unauthorized('no_credentials', 'Authentication required')
        return await call_next(request)


def get_auth_identity(request: Request) -> AuthIdentity:
    """FastAPI dependency returning the authenticated identity.

    Raises:
        HTTPException: 401 if no identity is attached to the request.
    """
    from fastapi import HTTPException

    identity: AuthIdentity | None = getattr(request.state, 'auth_identity', None)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={
                'error': 'unauthorized',
                'code': 'no_credentials',
                'detail': 'Authentication required',
            },
            headers={'WWW-Authenticate': 'Bearer'},
        )
    return identity
