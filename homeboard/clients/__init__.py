"""Expose provider-facing clients that do not depend on the service layer."""

from .env_file_store import EnvFileTokenStore
from .errors import (
    AuthorizationRejectedError,
    CredentialError,
    InvalidGrantError,
    PersistenceError,
    RefreshSecretNotFoundError,
    TokenRefreshError,
    TransientNetworkError,
)
from .google_auth import GoogleOAuthClient

__all__ = [
    "AuthorizationRejectedError",
    "CredentialError",
    "EnvFileTokenStore",
    "GoogleOAuthClient",
    "InvalidGrantError",
    "PersistenceError",
    "RefreshSecretNotFoundError",
    "TokenRefreshError",
    "TransientNetworkError",
]
