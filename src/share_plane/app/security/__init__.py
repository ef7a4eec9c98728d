"""Authentication and secret-handling utilities."""

from .auth_guard import (
    AuthGuardMiddleware,
    get_auth_identity,
)
from .passwords import (
    hash_password,
    verify_password,
)
from .token_verify import (
    AuthIdentity,
    StaticKeyProvider,
    TokenVerificationError,
    TokenVerifier,
    create_token_verifier,
    extract_bearer_token,
)

__all__ = [
    'AuthGuardMiddleware',
    'AuthIdentity',
    'StaticKeyProvider',
    'TokenVerificationError',
    'TokenVerifier',
    'create_token_verifier',
    'extract_bearer_token',
    'get_auth_identity',
    'hash_password',
    'verify_password',
]
