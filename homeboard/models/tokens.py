"""
Domain models for credential persistence and the in-memory token cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TOKEN_FIELDS: tuple[str, ...] = (
    "refresh_token",
    "access_token",
    "expires_at",
    "client_id",
    "client_secret",
)


class RefreshSecret(BaseModel):
    """Long-lived credential plus whatever is needed to redeem it."""

    refresh_token: str = Field(..., min_length=1)
    access_token: Optional[str] = None
    expires_at: Optional[float] = Field(
        None,
        description="Provider expiry of the stored access token, epoch seconds.",
    )
    client_id: Optional[str] = None
    client_secret: Optional[str] = None


class MintedToken(BaseModel):
    """Token endpoint response, normalized across providers."""

    access_token: str = Field(..., min_length=1)
    expires_in: Optional[int] = Field(None, description="Lifetime in seconds.")
    refresh_token: Optional[str] = None

    @field_validator("expires_in")
    @classmethod
    def _positive_lifetime(cls, value: Optional[int]) -> Optional[int]:
        """Treat a zero or negative lifetime as undeclared."""
        if value is not None and value <= 0:
            return None
        return value

    @field_validator("refresh_token")
    @classmethod
    def _blank_refresh_token(cls, value: Optional[str]) -> Optional[str]:
        return value or None


@dataclass(frozen=True, slots=True)
class CachedToken:
    """Access token held in memory; ``expires_at`` already has the margin removed."""

    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class CredentialStatus(BaseModel):
    """Observable state of one credential identity. Never carries token values."""

    identity: str
    has_token: bool
    valid: bool
    expires_at: Optional[float] = None
    refreshing: bool = False
    last_error: Optional[str] = None
    last_persistence_error: Optional[str] = None


__all__ = [
    "CachedToken",
    "CredentialStatus",
    "MintedToken",
    "RefreshSecret",
    "TOKEN_FIELDS",
]
