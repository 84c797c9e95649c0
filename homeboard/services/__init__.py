"""Service layer exports for the credential core."""

from .credentials import CredentialRegistry, UnknownCredentialError
from .guarded_call import GuardedCall
from .token_cipher import TokenCipherService
from .token_refresh import RefreshCoordinator, TokenMinter, TokenStore

__all__ = [
    "CredentialRegistry",
    "GuardedCall",
    "RefreshCoordinator",
    "TokenCipherService",
    "TokenMinter",
    "TokenStore",
    "UnknownCredentialError",
]
