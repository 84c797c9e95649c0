"""
Exception hierarchy shared by token minters, token stores and the refresh core.
"""

from __future__ import annotations


class CredentialError(Exception):
    """Base class for every credential lifecycle failure."""

    def __init__(self, message: str, *, identity: str | None = None) -> None:
        super().__init__(message)
        self.identity = identity


class RefreshSecretNotFoundError(CredentialError):
    """Raised when no usable refresh secret is persisted for an identity."""


class TokenRefreshError(CredentialError):
    """Raised when the provider token endpoint fails to mint an access token."""

    kind = "refresh_failed"

    def __init__(
        self,
        message: str,
        *,
        identity: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, identity=identity)
        self.status_code = status_code


class TransientNetworkError(TokenRefreshError):
    """Timeout or connection failure; the next call may simply try again."""

    kind = "transient"


class InvalidGrantError(TokenRefreshError):
    """The refresh secret itself was rejected; a human must re-authorize."""

    kind = "invalid_grant"


class AuthorizationRejectedError(CredentialError):
    """A resource call kept answering 401 after one forced refresh."""

    def __init__(
        self,
        message: str,
        *,
        identity: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, identity=identity)
        self.status_code = status_code


class PersistenceError(CredentialError):
    """Raised when a token store cannot durably record a change."""


__all__ = [
    "AuthorizationRejectedError",
    "CredentialError",
    "InvalidGrantError",
    "PersistenceError",
    "RefreshSecretNotFoundError",
    "TokenRefreshError",
    "TransientNetworkError",
]
