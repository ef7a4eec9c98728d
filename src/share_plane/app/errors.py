"""Share-plane error taxonomy and HTTP mapping.

Every failure a manager can raise is a ``SharePlaneError`` subclass carrying
a stable machine-readable ``code`` and an HTTP status. Route handlers never
build error responses themselves; ``install_error_handlers`` maps the
taxonomy onto JSON bodies of the form::

    {"error": <code>, "detail": <message>, "request_id": <id>}

``ConfigurationError`` and ``InternalError`` (and any unexpected exception,
including downstream Supabase failures) are logged with full detail and
returned to the caller with a generic message only.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_SERVER_MESSAGE = 'Something went wrong. Please try again later.'


class SharePlaneError(Exception):
    """Base class for all share-plane domain errors."""

    status_code: int = 500
    default_code: str = 'internal_error'

    def __init__(self, detail: str = '', *, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.detail = detail
        super().__init__(f'{self.code}: {detail}' if detail else self.code)

    @property
    def exposes_detail(self) -> bool:
        return self.status_code < 500


class ValidationError(SharePlaneError):
    """Malformed or missing field, unsupported resource type or permission."""

    status_code = 400
    default_code = 'validation_error'


class UnauthorizedError(SharePlaneError):
    """Share password missing or incorrect."""

    status_code = 401
    default_code = 'unauthorized'


class AuthorizationError(SharePlaneError):
    """Caller is not allowed to act on this record."""

    status_code = 403
    default_code = 'forbidden'


class NotFoundError(SharePlaneError):
    status_code = 404
    default_code = 'not_found'


class ConflictError(SharePlaneError):
    status_code = 409
    default_code = 'conflict'


class ExpiredError(SharePlaneError):
    """Share link exists but is past its expiry time."""

    status_code = 410
    default_code = 'share_expired'


class ConfigurationError(SharePlaneError):
    """Missing backing-store wiring or invalid settings."""

    status_code = 500
    default_code = 'configuration_error'


class InternalError(SharePlaneError):
    status_code = 500
    default_code = 'internal_error'


def _request_id(request: Request) -> str | None:
    return getattr(request.state, 'request_id', None) or request.headers.get('x-request-id')


def error_response(request: Request, exc: SharePlaneError) -> JSONResponse:
    """Render a SharePlaneError as a JSON response."""
    detail = exc.detail if exc.exposes_detail else GENERIC_SERVER_MESSAGE
    headers = {'WWW-Authenticate': 'Password'} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            'error': exc.code if exc.exposes_detail else 'internal_error',
            'detail': detail,
            'request_id': _request_id(request),
        },
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register taxonomy, request-validation and catch-all handlers."""

    @app.exception_handler(SharePlaneError)
    async def _handle_share_plane_error(request: Request, exc: SharePlaneError):
        if exc.exposes_detail:
            logger.info(
                '%s %s -> %s (%s)',
                request.method, request.url.path, exc.status_code, exc.code,
            )
        else:
            logger.error(
                '%s %s failed: %s',
                request.method, request.url.path, exc,
            )
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(request: Request, exc: RequestValidationError):
        problems = [
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        ]
        return error_response(
            request,
            ValidationError('; '.join(problems) or 'Invalid request.'),
        )

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception):
        logger.exception(
            'Unhandled error on %s %s', request.method, request.url.path,
        )
        return error_response(request, InternalError(str(exc)))
